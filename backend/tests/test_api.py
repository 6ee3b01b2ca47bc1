import json
import uuid

import pytest
from fastapi.testclient import TestClient

import paperlenz.services.paper_input as paper_input
from paperlenz.api.v1.chat import get_chat_service
from paperlenz.api.v1.papers import get_analyzers
from paperlenz.core.exceptions import InvalidResponseFormatError, LLMConfigurationError, LLMServiceError
from paperlenz.main import app
from paperlenz.schemas.schemas import PaperAnalysis

ORIGIN = {"Origin": "http://localhost:5173"}


class StubAnalyzer:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []

    async def analyze_raw(self, content, academic_level, title=None, input_type="abstract"):
        self.calls.append((content, academic_level, title, input_type))
        if self.error:
            raise self.error
        return self.data

    async def analyze(self, content, academic_level, title=None, input_type="abstract"):
        return PaperAnalysis.model_validate(await self.analyze_raw(content, academic_level, title, input_type))


class StubChat:
    async def get_chat_response(self, turns):
        return f"You said {len(turns)} thing(s)."


@pytest.fixture
def client():
    with TestClient(app, headers=ORIGIN) as c:
        yield c
    app.dependency_overrides.clear()


def use_analyzers(primary, fallback=None):
    app.dependency_overrides[get_analyzers] = lambda: (primary, fallback or primary)


def register(client, level="graduate"):
    email = f"user-{uuid.uuid4().hex[:8]}@example.com"
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "secret123", "username": "reader", "academic_level": level},
    )
    assert response.status_code == 201, response.text
    return email


def analyze_abstract(client, title="Sleep and Memory"):
    response = client.post(
        "/api/v1/papers/analyze",
        json={"input_type": "abstract", "content": "Sleep helps memory.", "title": title, "academic_level": "graduate"},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api/v1/health").status_code == 200


def test_register_login_me_and_update(client):
    email = register(client)
    assert client.get("/api/v1/auth/me").json()["email"] == email

    client.post("/api/v1/auth/logout")
    client.cookies.clear()
    assert client.get("/api/v1/auth/me").status_code == 401

    response = client.post("/api/v1/auth/login", data={"username": email, "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["academic_level"] == "graduate"

    response = client.patch("/api/v1/auth/me", json={"academic_level": "professor"})
    assert response.json()["academic_level"] == "professor"
    assert response.json()["username"] == "reader"


def test_duplicate_email_and_bad_password(client):
    email = register(client)
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "secret123", "username": "again"},
    )
    assert response.status_code == 400

    response = client.post("/api/v1/auth/login", data={"username": email, "password": "wrong-password"})
    assert response.status_code == 401


def test_login_throttled_after_repeated_failures(client, monkeypatch):
    import paperlenz.api.v1.auth as auth_routes
    from paperlenz.core.rate_limit import LoginThrottle

    monkeypatch.setattr(auth_routes, "login_throttle", LoginThrottle(per_ip=10, per_user=2, window_seconds=60))
    email = register(client)
    client.cookies.clear()
    for _ in range(2):
        response = client.post("/api/v1/auth/login", data={"username": email, "password": "wrong-password"})
        assert response.status_code == 401

    response = client.post("/api/v1/auth/login", data={"username": email, "password": "secret123"})
    assert response.status_code == 429
    assert int(response.headers["retry-after"]) >= 1


def test_cookie_request_without_origin_is_rejected(client):
    register(client)
    response = client.post("/api/v1/auth/logout", headers={"Origin": ""})
    # An empty Origin counts as missing; the auth cookie makes this a CSRF failure.
    assert response.status_code == 403


def test_papers_require_auth(client):
    assert client.get("/api/v1/papers").status_code == 401


def test_edge_analyze(client, sample_analysis):
    register(client)
    use_analyzers(StubAnalyzer(sample_analysis))

    response = client.post(
        "/api/v1/analyze",
        json={"content": "Sleep helps memory.", "academic_level": "graduate", "title": "Sleep"},
    )
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["analysis"]["one_line_summary"] == sample_analysis["one_line_summary"]
    assert body["metadata"]["academic_level"] == "graduate"
    assert body["metadata"]["input_type"] == "abstract"


def test_edge_analyze_missing_fields(client):
    register(client)
    use_analyzers(StubAnalyzer({}))
    response = client.post("/api/v1/analyze", json={"content": "", "academic_level": "graduate"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing required fields: content and academic_level"}


def test_edge_analyze_invalid_format(client):
    register(client)
    use_analyzers(StubAnalyzer(error=InvalidResponseFormatError("Invalid response format from AI service: Expecting value")))
    response = client.post("/api/v1/analyze", json={"content": "x", "academic_level": "graduate"})
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Invalid response format from AI service"
    assert "Expecting value" in body["details"]


def test_analyze_saves_and_dashboard_flow(client, sample_analysis):
    register(client)
    use_analyzers(StubAnalyzer(sample_analysis))

    result = analyze_abstract(client)
    assert result["status"] == "success"
    assert result["saved"] is True
    assert result["paper"]["title"] == "Sleep and Memory"
    assert result["analysis"]["paper_quality_score"]["total"] == 75
    paper_id = result["paper"]["id"]

    analyze_abstract(client, title="Dreams")

    papers = client.get("/api/v1/papers").json()
    assert [p["title"] for p in papers] == ["Dreams", "Sleep and Memory"]
    assert [p["title"] for p in client.get("/api/v1/papers", params={"search": "sLeEp"}).json()] == ["Sleep and Memory"]
    assert client.get("/api/v1/papers", params={"input_type": "pdf"}).json() == []

    response = client.patch(f"/api/v1/papers/{paper_id}/notes", json={"notes": "Re-read methods"})
    assert response.json()["notes"] == "Re-read methods"

    stats = client.get("/api/v1/papers/stats").json()
    assert stats == {
        "total_papers": 2,
        "avg_credibility": 82,
        "papers_with_notes": 1,
        "days_since_last_analysis": stats["days_since_last_analysis"],
    }
    assert stats["days_since_last_analysis"] in (0, 1)

    assert client.delete(f"/api/v1/papers/{paper_id}").status_code == 204
    assert client.get(f"/api/v1/papers/{paper_id}").status_code == 404


def test_papers_are_private(client, sample_analysis):
    register(client)
    use_analyzers(StubAnalyzer(sample_analysis))
    paper_id = analyze_abstract(client)["paper"]["id"]

    client.cookies.clear()
    register(client)
    assert client.get(f"/api/v1/papers/{paper_id}").status_code == 404
    assert client.get("/api/v1/papers").json() == []


def test_analyze_uses_fallback(client, sample_analysis):
    register(client)
    primary = StubAnalyzer(error=LLMServiceError("primary down"))
    fallback = StubAnalyzer(sample_analysis)
    use_analyzers(primary, fallback)

    result = analyze_abstract(client)

    assert result["saved"] is True
    assert primary.calls == fallback.calls


def test_analyze_error_status_codes(client):
    register(client)
    use_analyzers(StubAnalyzer(error=LLMServiceError("AI service error: timeout")))
    response = client.post(
        "/api/v1/papers/analyze",
        json={"input_type": "abstract", "content": "x", "academic_level": "graduate"},
    )
    assert response.status_code == 502
    assert response.json()["detail"] == "AI service error: timeout"

    use_analyzers(StubAnalyzer(error=LLMConfigurationError("AI service API key not configured")))
    response = client.post(
        "/api/v1/papers/analyze",
        json={"input_type": "abstract", "content": "x", "academic_level": "graduate"},
    )
    assert response.status_code == 500


def test_empty_abstract_is_rejected(client):
    register(client)
    use_analyzers(StubAnalyzer({}))
    response = client.post(
        "/api/v1/papers/analyze",
        json={"input_type": "abstract", "content": "   ", "academic_level": "graduate"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter an abstract"


def test_doi_analysis_without_crossref(client, sample_analysis, monkeypatch):
    async def no_metadata(doi, client=None):
        return None

    monkeypatch.setattr(paper_input, "resolve_doi", no_metadata)
    register(client)
    analyzer = StubAnalyzer(sample_analysis)
    use_analyzers(analyzer)

    response = client.post(
        "/api/v1/papers/analyze",
        json={"input_type": "doi", "content": "https://doi.org/10.1000/xyz", "academic_level": "graduate"},
    )
    paper = response.json()["paper"]
    assert paper["doi"] == "10.1000/xyz"
    assert paper["title"] == "Paper from DOI: 10.1000/xyz"
    assert paper["input_type"] == "doi"
    assert analyzer.calls[0][0] == "DOI: 10.1000/xyz"


def test_stream_emits_every_state(client, sample_analysis):
    register(client)
    use_analyzers(StubAnalyzer(sample_analysis))

    response = client.post(
        "/api/v1/papers/analyze/stream",
        json={"input_type": "abstract", "content": "Sleep helps memory.", "academic_level": "graduate"},
    )
    assert response.status_code == 200
    events = [line[len("data: "):] for line in response.text.splitlines() if line.startswith("data: ")]
    assert events[-1] == "[DONE]"
    states = [json.loads(e) for e in events[:-1]]
    assert [s["progress"] for s in states] == [10, 25, 50, 75, 90, 100]
    assert states[-1]["status"] == "success"
    assert states[-1]["saved"] is True
    assert client.get(f"/api/v1/papers/{states[-1]['paper_id']}").status_code == 200


def test_pdf_upload(client, sample_analysis, monkeypatch):
    async def fake_extract(path):
        return "Extracted body text."

    monkeypatch.setattr(paper_input, "extract_pdf_text", fake_extract)
    register(client)
    analyzer = StubAnalyzer(sample_analysis)
    use_analyzers(analyzer)

    response = client.post(
        "/api/v1/papers/analyze/upload",
        data={"academic_level": "high_school"},
        files={"file": ("deep_sleep.pdf", b"%PDF-1.4 fake body", "application/pdf")},
    )
    assert response.status_code == 200, response.text
    paper = response.json()["paper"]
    assert paper["title"] == "deep_sleep"
    assert paper["input_type"] == "pdf"
    assert paper["academic_level"] == "high_school"
    assert analyzer.calls[0] == ("Extracted body text.", "high_school", "deep_sleep", "pdf")


def test_pdf_upload_rejects_bad_files(client):
    register(client)
    use_analyzers(StubAnalyzer({}))

    response = client.post(
        "/api/v1/papers/analyze/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only PDF files are supported"

    response = client.post(
        "/api/v1/papers/analyze/upload",
        files={"file": ("fake.pdf", b"not really a pdf", "application/pdf")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid PDF file format"


def test_chat(client):
    register(client)
    app.dependency_overrides[get_chat_service] = lambda: StubChat()

    response = client.post("/api/v1/chat", json={"messages": [{"role": "user", "content": "hello"}]})
    assert response.json() == {"reply": "You said 1 thing(s)."}

    response = client.post("/api/v1/chat", json={"messages": [{"role": "system", "content": "hello"}]})
    assert response.status_code == 422
