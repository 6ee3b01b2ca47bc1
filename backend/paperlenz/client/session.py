import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from paperlenz.client.api import PaperLenzAPIError, PaperLenzClient

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


SessionListener = Callable[["AuthSession"], Awaitable[None] | None]


class AuthSession:
    """Who is signed in, as seen by one client.

    Lifecycle: ``uninitialized -> loading -> authenticated | anonymous``.
    Every transition notifies subscribed listeners.
    """

    def __init__(self, client: PaperLenzClient):
        self.client = client
        self.status = SessionStatus.UNINITIALIZED
        self.user: dict[str, Any] | None = None
        self._listeners: list[SessionListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _transition(self, status: SessionStatus, user: dict[str, Any] | None = None) -> None:
        self.status = status
        self.user = user
        for listener in list(self._listeners):
            result = listener(self)
            if inspect.isawaitable(result):
                await result

    async def initialize(self) -> SessionStatus:
        """Load the current user once. Later calls are no-ops."""
        if self.status != SessionStatus.UNINITIALIZED:
            return self.status

        await self._transition(SessionStatus.LOADING)
        try:
            user = await self.client.me()
        except PaperLenzAPIError as e:
            if e.status_code != 401:
                logger.warning("Could not load current user: %s", e)
            await self._transition(SessionStatus.ANONYMOUS)
        except httpx.HTTPError as e:
            logger.warning("Could not reach the API: %s", e)
            await self._transition(SessionStatus.ANONYMOUS)
        else:
            await self._transition(SessionStatus.AUTHENTICATED, user)
        return self.status

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        await self._transition(SessionStatus.LOADING)
        try:
            user = await self.client.login(email, password)
        except (PaperLenzAPIError, httpx.HTTPError):
            await self._transition(SessionStatus.ANONYMOUS)
            raise
        await self._transition(SessionStatus.AUTHENTICATED, user)
        return user

    async def sign_up(
        self, email: str, password: str, username: str, academic_level: str = "undergraduate"
    ) -> dict[str, Any]:
        await self._transition(SessionStatus.LOADING)
        try:
            user = await self.client.register(email, password, username, academic_level)
        except (PaperLenzAPIError, httpx.HTTPError):
            await self._transition(SessionStatus.ANONYMOUS)
            raise
        await self._transition(SessionStatus.AUTHENTICATED, user)
        return user

    async def sign_out(self) -> None:
        try:
            await self.client.logout()
        finally:
            await self._transition(SessionStatus.ANONYMOUS)
