import asyncio
import io
import uuid

import pytest

from paperlenz.core.exceptions import NotAPDFError, UploadTooLargeError
from paperlenz.core.rate_limit import FailureWindow, LoginThrottle
from paperlenz.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from paperlenz.services.storage import PDFStorage


def test_password_hashing():
    hashed = get_password_hash("secret123")
    assert verify_password("secret123", hashed)
    assert not verify_password("nope", hashed)
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_token_types():
    access = decode_token(create_access_token({"sub": "abc"}))
    refresh = decode_token(create_refresh_token({"sub": "abc"}))
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"
    assert decode_token("garbage") is None


def test_failure_window_blocks_after_limit():
    window = FailureWindow(limit=2, window_seconds=60)
    assert window.retry_after("k") == 0
    window.hit("k")
    assert window.retry_after("k") == 0
    window.hit("k")
    assert 1 <= window.retry_after("k") <= 60
    window.clear("k")
    assert window.retry_after("k") == 0


def test_failure_window_ignores_empty_key():
    window = FailureWindow(limit=1, window_seconds=60)
    window.hit("")
    assert window.retry_after("") == 0


def test_login_throttle_success_clears_only_user():
    throttle = LoginThrottle(per_ip=3, per_user=1, window_seconds=60)
    throttle.failed("1.2.3.4", "A@Example.com")
    assert throttle.retry_after("5.6.7.8", "a@example.com") > 0
    throttle.succeeded("a@example.com")
    assert throttle.retry_after("5.6.7.8", "a@example.com") == 0
    throttle.failed("1.2.3.4", "b@example.com")
    throttle.failed("1.2.3.4", "c@example.com")
    assert throttle.retry_after("1.2.3.4", "d@example.com") > 0


def test_login_user_key():
    assert LoginThrottle.user_key("  A@Example.com ") == "user:a@example.com"
    assert LoginThrottle.user_key("") == ""
    assert LoginThrottle.user_key(None) == ""


@pytest.mark.parametrize("key", ["../etc/passwd", "/abs.pdf", "", "pdfs/../../x.pdf"])
def test_storage_rejects_traversal(tmp_path, key):
    with pytest.raises(ValueError):
        PDFStorage(tmp_path).resolve(key)


class FakeUpload:
    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buf.read(size)


def test_storage_saves_and_removes_pdf(tmp_path):
    storage = PDFStorage(tmp_path, max_bytes=1024)
    owner = uuid.uuid4()

    async def scenario():
        key = await storage.save_pdf(FakeUpload(b"%PDF-1.4 body"), owner)
        path = await storage.path_for(key)
        assert path.read_bytes() == b"%PDF-1.4 body"
        assert key.startswith(f"pdfs/{owner}/")
        assert await storage.remove(key)
        assert not await storage.remove(key)

    asyncio.run(scenario())


def test_storage_rejects_non_pdf_and_oversized(tmp_path):
    storage = PDFStorage(tmp_path, max_bytes=10)
    owner = uuid.uuid4()
    with pytest.raises(NotAPDFError):
        asyncio.run(storage.save_pdf(FakeUpload(b"hello world"), owner))
    with pytest.raises(UploadTooLargeError, match="MB limit"):
        asyncio.run(storage.save_pdf(FakeUpload(b"%PDF-" + b"x" * 64), owner))
    assert not list(tmp_path.rglob("*.pdf"))
    assert not list(tmp_path.rglob("*.part"))
