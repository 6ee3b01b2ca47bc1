from typing import Iterable
from urllib.parse import urlparse
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response, JSONResponse
from starlette.types import ASGIApp

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def _origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}" if parsed.scheme and parsed.netloc else ""


class CSRFMiddleware(BaseHTTPMiddleware):
    """Reject cross-site writes made with the auth cookie.

    Unsafe methods must carry an Origin (or, failing that, a Referer) from an
    allowed origin. A request with neither header passes only when it carries
    no auth cookie, which keeps non-browser API clients working.
    """

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: Iterable[str],
        cookie_name: str = "access_token",
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.allowed_origins = {o.rstrip("/") for o in allowed_origins}
        self.cookie_name = cookie_name
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method in SAFE_METHODS or request.url.path in self.exempt_paths:
            return await call_next(request)

        reason = self._rejection_reason(request)
        if reason:
            return JSONResponse(status_code=403, content={"detail": f"CSRF validation failed: {reason}"})
        return await call_next(request)

    def _rejection_reason(self, request: Request) -> str | None:
        origin = request.headers.get("origin")
        if origin:
            return None if origin.rstrip("/") in self.allowed_origins else "invalid origin"

        referer = request.headers.get("referer")
        if referer:
            return None if _origin_of(referer) in self.allowed_origins else "invalid referer"

        if self.cookie_name in request.cookies:
            return "missing origin/referer"
        return None
