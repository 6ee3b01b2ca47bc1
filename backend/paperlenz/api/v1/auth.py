import uuid
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from paperlenz.core import get_db, verify_password, get_password_hash, create_access_token, create_refresh_token, decode_token, get_settings
from paperlenz.core.rate_limit import get_client_ip, login_throttle
from paperlenz.models import User
from paperlenz.schemas import UserCreate, UserResponse, UserUpdate

router = APIRouter()
settings = get_settings()

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _cookie_paths() -> dict[str, str]:
    # The refresh cookie is only sent to the auth routes.
    return {ACCESS_COOKIE: "/", REFRESH_COOKIE: settings.auth_cookie_path}


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Store both tokens as httpOnly cookies, secure outside debug mode."""
    lifetimes = {
        ACCESS_COOKIE: (access_token, settings.access_token_expire_minutes * 60),
        REFRESH_COOKIE: (refresh_token, settings.refresh_token_expire_days * 86400),
    }
    for name, path in _cookie_paths().items():
        value, max_age = lifetimes[name]
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path=path,
            httponly=True,
            secure=not settings.debug,
            samesite="lax",
        )


def clear_auth_cookies(response: Response) -> None:
    for name, path in _cookie_paths().items():
        response.delete_cookie(key=name, path=path)


def _issue_tokens(response: Response, user: User) -> None:
    claims = {"sub": str(user.id)}
    set_auth_cookies(response, create_access_token(claims), create_refresh_token(claims))


async def _user_from_token(db: AsyncSession, token: str | None, token_type: str, detail: str) -> User:
    payload = decode_token(token) if token else None
    if not payload or payload.get("type") != token_type:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    try:
        user_uuid = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return user


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return await _user_from_token(db, token, "access", "Invalid token")


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    response: Response,
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        email=email,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        academic_level=user_data.academic_level,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    _issue_tokens(response, user)
    return user


@router.post("/login", response_model=UserResponse)
async def login(
    request: Request,
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Log in with email (sent as the OAuth2 ``username`` field) and password."""
    client_ip = get_client_ip(request)
    email = (form_data.username or "").strip().lower()

    wait = login_throttle.retry_after(client_ip, email)
    if wait:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later",
            headers={"Retry-After": str(wait)},
        )

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is None or not verify_password(form_data.password, user.hashed_password):
        login_throttle.failed(client_ip, email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is inactive")

    login_throttle.succeeded(email)
    _issue_tokens(response, user)
    return user


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token missing")

    user = await _user_from_token(db, token, "refresh", "Invalid refresh token")
    _issue_tokens(response, user)
    return {"message": "Token refreshed"}


@router.post("/logout")
async def logout(response: Response):
    clear_auth_cookies(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    updates: UserUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update username and/or default academic level. Supports partial updates."""
    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return current_user
