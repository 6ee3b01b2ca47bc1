import math
import time
from collections import defaultdict, deque
from threading import Lock

from fastapi import Request

from paperlenz.core.config import get_settings

settings = get_settings()


class FailureWindow:
    """Timestamps of recent failures per key, pruned to a sliding window."""

    def __init__(self, limit: int, window_seconds: int) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def _live(self, key: str, now: float) -> deque[float]:
        hits = self._hits[key]
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            self._hits.pop(key, None)
        return hits

    def retry_after(self, key: str) -> int:
        """Seconds until ``key`` may try again, 0 when it is not blocked."""
        if not key or self.limit <= 0:
            return 0
        now = time.monotonic()
        with self._lock:
            hits = self._live(key, now)
            if len(hits) < self.limit:
                return 0
            return max(1, math.ceil(hits[-self.limit] + self.window_seconds - now))

    def hit(self, key: str) -> None:
        if not key or self.limit <= 0:
            return
        now = time.monotonic()
        with self._lock:
            self._live(key, now)
            self._hits[key].append(now)

    def clear(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)


class LoginThrottle:
    """Failed-login limits per client IP and per account email."""

    def __init__(self, per_ip: int, per_user: int, window_seconds: int) -> None:
        self.by_ip = FailureWindow(per_ip, window_seconds)
        self.by_user = FailureWindow(per_user, window_seconds)

    @staticmethod
    def user_key(email: str | None) -> str:
        email = (email or "").strip().lower()
        return f"user:{email}" if email else ""

    def retry_after(self, ip: str, email: str | None) -> int:
        return max(self.by_ip.retry_after(ip), self.by_user.retry_after(self.user_key(email)))

    def failed(self, ip: str, email: str | None) -> None:
        self.by_ip.hit(ip)
        self.by_user.hit(self.user_key(email))

    def succeeded(self, email: str | None) -> None:
        self.by_user.clear(self.user_key(email))


def get_client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client and request.client.host else "unknown"


login_throttle = LoginThrottle(
    per_ip=settings.login_rate_limit_per_ip,
    per_user=settings.login_rate_limit_per_user,
    window_seconds=settings.login_rate_limit_window_seconds,
)
