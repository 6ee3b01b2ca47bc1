import asyncio

import httpx
import pytest
from pypdf.errors import PdfReadError

import paperlenz.services.paper_input as paper_input
from paperlenz.core.exceptions import InvalidInputError


def crossref_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_normalize_doi_strips_prefixes():
    assert paper_input.normalize_doi(" https://doi.org/10.1000/xyz ") == "10.1000/xyz"
    assert paper_input.normalize_doi("doi:10.1000/xyz") == "10.1000/xyz"
    assert paper_input.normalize_doi("10.1000/xyz") == "10.1000/xyz"


def test_empty_doi_is_rejected():
    with pytest.raises(InvalidInputError, match="Please enter a DOI"):
        asyncio.run(paper_input.prepare_doi_input("   "))


def test_doi_enriched_from_crossref():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/10.1000/xyz")
        return httpx.Response(200, json={
            "message": {
                "title": ["Sleep and Memory"],
                "container-title": ["Journal of Sleep"],
                "author": [{"given": "Jane", "family": "Doe"}],
                "issued": {"date-parts": [[2020, 5]]},
                "abstract": "<jats:p>Sleep helps   memory.</jats:p>",
            }
        })

    async def go():
        async with crossref_client(handler) as client:
            return await paper_input.prepare_doi_input("10.1000/xyz", client)

    prepared = asyncio.run(go())

    assert prepared.input_type == "doi"
    assert prepared.doi == "10.1000/xyz"
    assert prepared.title == "Sleep and Memory"
    assert prepared.abstract == "Sleep helps memory."
    assert prepared.content.startswith("DOI: 10.1000/xyz\nTitle: Sleep and Memory")
    assert "Authors: Jane Doe" in prepared.content
    assert "Year: 2020" in prepared.content


def test_doi_lookup_failure_falls_back_to_bare_doi():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Resource not found."})

    async def go():
        async with crossref_client(handler) as client:
            return await paper_input.prepare_doi_input("10.1000/missing", client)

    prepared = asyncio.run(go())

    assert prepared.content == "DOI: 10.1000/missing"
    assert prepared.title == "Paper from DOI: 10.1000/missing"
    assert prepared.abstract is None


def test_abstract_input_defaults_title():
    prepared = paper_input.prepare_abstract_input("  An abstract.  ")
    assert prepared.content == "An abstract."
    assert prepared.title == "Scientific Paper Analysis"
    assert prepared.abstract == "An abstract."


def test_empty_abstract_is_rejected():
    with pytest.raises(InvalidInputError, match="Please enter an abstract"):
        paper_input.prepare_abstract_input("")


def test_pdf_title_from_filename():
    assert paper_input.pdf_title_from_filename("deep_sleep.PDF") == "deep_sleep"
    assert paper_input.pdf_title_from_filename("") == "Uploaded PDF Document"


def test_pdf_input_truncates_long_text(tmp_path, monkeypatch):
    pdf = tmp_path / "paper.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    async def fake_extract(path):
        return "a" * 20000 + "b" * 20000

    monkeypatch.setattr(paper_input, "extract_pdf_text", fake_extract)
    prepared = asyncio.run(paper_input.prepare_pdf_input(pdf, "paper.pdf", storage_key="k.pdf"))

    assert prepared.input_type == "pdf"
    assert prepared.title == "paper"
    assert prepared.storage_key == "k.pdf"
    assert "...[TRUNCATED]..." in prepared.content
    assert prepared.content.startswith("a" * 100)
    assert prepared.content.endswith("b" * 100)


def test_unreadable_pdf_raises_invalid_input(tmp_path, monkeypatch):
    pdf = tmp_path / "broken.pdf"
    pdf.write_bytes(b"%PDF-garbage")

    def broken_reader(path):
        raise PdfReadError("EOF marker not found")

    monkeypatch.setattr(paper_input, "PdfReader", broken_reader)
    with pytest.raises(InvalidInputError, match="Invalid PDF file format"):
        asyncio.run(paper_input.extract_pdf_text(pdf))


def test_missing_pdf_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        asyncio.run(paper_input.extract_pdf_text(tmp_path / "nope.pdf"))
