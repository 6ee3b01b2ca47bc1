"""Turn a DOI, a pasted abstract or an uploaded PDF into analysis input."""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import httpx
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from paperlenz.core.config import get_settings
from paperlenz.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_ABSTRACT_TITLE = "Scientific Paper Analysis"
DEFAULT_PDF_TITLE = "Uploaded PDF Document"
MAX_CONTENT_CHARS = 24000

_DOI_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
_JATS_TAG = re.compile(r"<[^>]+>")


@dataclass
class PreparedInput:
    input_type: str
    content: str
    title: str
    doi: str | None = None
    abstract: str | None = None
    storage_key: str | None = None


def normalize_doi(raw: str) -> str:
    return _DOI_PREFIX.sub("", (raw or "").strip()).strip()


def _truncate_head_tail(text: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    t = (text or "").strip()
    if len(t) <= max_chars:
        return t
    half = max_chars // 2
    return "\n\n".join([t[:half], "...[TRUNCATED]...", t[-half:]])


async def resolve_doi(doi: str, client: httpx.AsyncClient | None = None) -> dict[str, str] | None:
    """Look up DOI metadata on Crossref. Returns None when the lookup fails."""
    url = f"{settings.crossref_api_url.rstrip('/')}/{quote(doi, safe='/')}"
    params = {"mailto": settings.crossref_mailto} if settings.crossref_mailto else None
    headers = {"User-Agent": f"{settings.app_name}/1.0"}

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=settings.crossref_timeout_seconds)
    try:
        response = await client.get(url, params=params, headers=headers)
        if response.status_code != 200:
            logger.warning("Crossref lookup for %s returned status %s", doi, response.status_code)
            return None
        message = response.json().get("message") or {}
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Crossref lookup for %s failed: %s", doi, e)
        return None
    finally:
        if owns_client:
            await client.aclose()

    titles = message.get("title") or []
    journals = message.get("container-title") or []
    authors = [
        " ".join(part for part in (a.get("given"), a.get("family")) if part)
        for a in message.get("author") or []
    ]
    year_parts = (message.get("issued") or {}).get("date-parts") or [[None]]
    abstract = _JATS_TAG.sub("", message.get("abstract") or "")

    return {
        "title": (titles[0] if titles else "").strip(),
        "authors": ", ".join(a for a in authors if a),
        "journal": (journals[0] if journals else "").strip(),
        "year": str(year_parts[0][0]) if year_parts and year_parts[0] and year_parts[0][0] else "",
        "abstract": re.sub(r"\s+", " ", abstract).strip(),
    }


async def prepare_doi_input(raw_doi: str, client: httpx.AsyncClient | None = None) -> PreparedInput:
    doi = normalize_doi(raw_doi)
    if not doi:
        raise InvalidInputError("Please enter a DOI")

    prepared = PreparedInput(
        input_type="doi",
        content=f"DOI: {doi}",
        title=f"Paper from DOI: {doi}",
        doi=doi,
    )

    metadata = await resolve_doi(doi, client)
    if not metadata:
        return prepared

    lines = [f"DOI: {doi}"]
    for label, key in (("Title", "title"), ("Authors", "authors"), ("Journal", "journal"), ("Year", "year")):
        if metadata.get(key):
            lines.append(f"{label}: {metadata[key]}")
    if metadata.get("abstract"):
        lines.append(f"Abstract: {metadata['abstract']}")
        prepared.abstract = metadata["abstract"]
    prepared.content = "\n".join(lines)
    if metadata.get("title"):
        prepared.title = metadata["title"]
    return prepared


def prepare_abstract_input(abstract: str, title: str | None = None) -> PreparedInput:
    abstract = (abstract or "").strip()
    if not abstract:
        raise InvalidInputError("Please enter an abstract")
    return PreparedInput(
        input_type="abstract",
        content=abstract,
        title=(title or "").strip() or DEFAULT_ABSTRACT_TITLE,
        abstract=abstract,
    )


async def extract_pdf_text(pdf_path: str | Path) -> str:
    """Extract text from a PDF (blocking pypdf work runs in a thread)."""
    path = Path(pdf_path)
    if not path.exists():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")

    def _read() -> str:
        reader = PdfReader(str(path))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    try:
        return await asyncio.to_thread(_read)
    except PdfReadError as e:
        raise InvalidInputError("Invalid PDF file format") from e


def pdf_title_from_filename(filename: str | None) -> str:
    stem = re.sub(r"\.pdf$", "", (filename or "").strip(), flags=re.IGNORECASE).strip()
    return stem or DEFAULT_PDF_TITLE


async def prepare_pdf_input(
    pdf_path: str | Path,
    filename: str | None,
    storage_key: str | None = None,
    title: str | None = None,
) -> PreparedInput:
    text = await extract_pdf_text(pdf_path)
    if not text.strip():
        raise InvalidInputError("Could not extract any text from the PDF")
    return PreparedInput(
        input_type="pdf",
        content=_truncate_head_tail(text),
        title=(title or "").strip() or pdf_title_from_filename(filename),
        storage_key=storage_key,
    )
