import uuid
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from paperlenz.core.config import get_settings
from paperlenz.core.exceptions import NotAPDFError, UploadTooLargeError

settings = get_settings()

PDF_MAGIC_HEADER = b"%PDF-"
CHUNK_SIZE = 64 * 1024


class PDFStorage:
    """Uploaded paper PDFs on local disk, one folder per owner.

    Keys look like ``pdfs/<owner_id>/<uuid>.pdf`` and are what ``Paper.storage_key``
    holds.
    """

    def __init__(self, root: str | Path | None = None, max_bytes: int | None = None):
        self.root = Path(root or settings.upload_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes

    def resolve(self, key: str) -> Path:
        """Map a storage key to a path inside the root, refusing anything that escapes it."""
        if not key or key.startswith(("/", "\\")) or ".." in Path(key).parts:
            raise ValueError(f"Invalid storage key: {key!r}")
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    def _too_large(self) -> UploadTooLargeError:
        return UploadTooLargeError(f"File size exceeds {self.max_bytes // (1024 * 1024)}MB limit")

    async def save_pdf(self, upload: Any, owner_id: uuid.UUID) -> str:
        """Stream an upload to disk and return its key.

        The header is checked on the first chunk, before anything is written.
        Data goes to a ``.part`` file that is renamed only once the whole body
        is within the size limit.
        """
        first = await upload.read(CHUNK_SIZE)
        if not first.startswith(PDF_MAGIC_HEADER):
            raise NotAPDFError("Invalid PDF file format")

        key = f"pdfs/{owner_id}/{uuid.uuid4()}.pdf"
        final_path = self.resolve(key)
        part_path = final_path.with_suffix(".part")
        await aiofiles.os.makedirs(final_path.parent, exist_ok=True)

        written = 0
        try:
            async with aiofiles.open(part_path, "wb") as out:
                chunk = first
                while chunk:
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise self._too_large()
                    await out.write(chunk)
                    chunk = await upload.read(CHUNK_SIZE)
            await aiofiles.os.replace(part_path, final_path)
        finally:
            if await aiofiles.os.path.exists(part_path):
                await aiofiles.os.remove(part_path)

        return key

    async def path_for(self, key: str) -> Path:
        path = self.resolve(key)
        if not await aiofiles.os.path.exists(path):
            raise FileNotFoundError(f"Stored PDF not found: {key}")
        return path

    async def remove(self, key: str) -> bool:
        path = self.resolve(key)
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
            return True
        return False
