import logging
from pathlib import Path
from typing import Any, Iterable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_ORIGIN = "http://localhost:5173"


class PaperLenzAPIError(Exception):
    """Non-2xx response from the PaperLenz API."""

    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class PaperLenzClient:
    """Async client for the PaperLenz HTTP API.

    Auth tokens live in httpOnly cookies, so one client instance keeps one
    login. An ``Origin`` header is sent on every call to pass the server's
    CSRF check.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_prefix: str = "/api/v1",
        origin: str = DEFAULT_ORIGIN,
        timeout: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}{api_prefix}",
            headers={"Origin": origin},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "PaperLenzClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, **kwargs)
        if response.is_error:
            try:
                body = response.json()
                detail = (body.get("detail") or body.get("error") or body) if isinstance(body, dict) else body
            except ValueError:
                detail = response.text or response.reason_phrase
            logger.debug("%s %s failed with %s: %s", method, path, response.status_code, detail)
            raise PaperLenzAPIError(response.status_code, detail)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Auth

    async def register(
        self, email: str, password: str, username: str, academic_level: str = "undergraduate"
    ) -> dict:
        return await self._request(
            "POST",
            "/auth/register",
            json={
                "email": email,
                "password": password,
                "username": username,
                "academic_level": academic_level,
            },
        )

    async def login(self, email: str, password: str) -> dict:
        return await self._request("POST", "/auth/login", data={"username": email, "password": password})

    async def refresh(self) -> dict:
        return await self._request("POST", "/auth/refresh")

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")
        self._client.cookies.clear()

    async def me(self) -> dict:
        return await self._request("GET", "/auth/me")

    async def update_me(self, **changes: Any) -> dict:
        return await self._request("PATCH", "/auth/me", json=changes)

    # Analysis

    async def analyze(
        self,
        input_type: str,
        content: str,
        academic_level: str = "undergraduate",
        title: str | None = None,
    ) -> dict:
        payload = {"input_type": input_type, "content": content, "academic_level": academic_level}
        if title:
            payload["title"] = title
        return await self._request("POST", "/papers/analyze", json=payload)

    async def analyze_pdf(
        self,
        pdf_path: str | Path,
        academic_level: str = "undergraduate",
        title: str | None = None,
    ) -> dict:
        path = Path(pdf_path)
        data = {"academic_level": academic_level}
        if title:
            data["title"] = title
        with path.open("rb") as f:
            return await self._request(
                "POST",
                "/papers/analyze/upload",
                data=data,
                files={"file": (path.name, f.read(), "application/pdf")},
            )

    # Dashboard

    async def list_papers(
        self,
        search: str | None = None,
        input_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if search:
            params["search"] = search
        if input_type:
            params["input_type"] = input_type
        return await self._request("GET", "/papers", params=params)

    async def stats(self) -> dict:
        return await self._request("GET", "/papers/stats")

    async def get_paper(self, paper_id: str) -> dict:
        return await self._request("GET", f"/papers/{paper_id}")

    async def update_notes(self, paper_id: str, notes: str) -> dict:
        return await self._request("PATCH", f"/papers/{paper_id}/notes", json={"notes": notes})

    async def delete_paper(self, paper_id: str) -> None:
        await self._request("DELETE", f"/papers/{paper_id}")

    # Chat

    async def chat(self, messages: Iterable[dict[str, str]]) -> str:
        data = await self._request("POST", "/chat", json={"messages": list(messages)})
        return data["reply"]
