"""API integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import CountingEmbedding, FakeCompletion
from scholarai.api import dependencies as deps
from scholarai.app import app


@pytest.fixture
def client(embedding_service: CountingEmbedding, fake_completion: FakeCompletion) -> TestClient:
    app.dependency_overrides[deps.get_embedding_service] = lambda: embedding_service
    app.dependency_overrides[deps.get_completion_service] = lambda: fake_completion
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _upload(client: TestClient, name: str, content: bytes, content_type: str = "text/plain"):
    return client.post("/api/upload", files=[("files", (name, content, content_type))])


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_upload_list_and_delete(client: TestClient, sample_text: str) -> None:
    resp = _upload(client, "notes.txt", sample_text.encode())
    assert resp.status_code == 200
    uploaded = resp.json()["uploaded"]
    assert len(uploaded) == 1
    assert uploaded[0]["name"] == "notes.txt"
    assert uploaded[0]["chunkCount"] == 18
    doc_id = uploaded[0]["id"]

    listing = client.get("/api/docs").json()["docs"]
    assert [doc["id"] for doc in listing] == [doc_id]
    assert set(listing[0]) == {"id", "name", "chunkCount", "createdAt"}
    assert listing[0]["createdAt"].endswith("Z")

    assert client.delete(f"/api/docs/{doc_id}").json() == {"deleted": doc_id}
    again = client.delete(f"/api/docs/{doc_id}")
    assert again.status_code == 404
    assert again.json() == {"error": "Document not found"}
    assert client.get("/api/docs").json() == {"docs": []}


def test_unsupported_file_is_skipped(client: TestClient, tmp_path: Path) -> None:
    resp = _upload(client, "diagram.png", b"\x89PNG\r\n", "image/png")
    assert resp.status_code == 200
    assert resp.json() == {"uploaded": []}
    assert list((tmp_path / "uploads").iterdir()) == []


def test_ask_returns_citations(
    client: TestClient,
    fake_completion: FakeCompletion,
    embedding_service: CountingEmbedding,
    sample_text: str,
) -> None:
    doc_id = _upload(client, "notes.txt", sample_text.encode()).json()["uploaded"][0]["id"]
    resp = client.post("/api/ask", json={"question": "word", "docIds": [doc_id], "k": 4})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["answer"] == "stub answer [1]"
    assert payload["truncated"] is False
    assert [citation["label"] for citation in payload["citations"]] == [1, 2, 3, 4]
    assert {citation["docId"] for citation in payload["citations"]} == {doc_id}
    assert all(citation["name"] == "notes.txt" for citation in payload["citations"])
    assert "--- Source 1 | notes.txt" in fake_completion.calls[0]["user"]
    assert embedding_service.batches[0] == ["word"]


def test_ask_unknown_scope_is_rejected_before_embedding(
    client: TestClient,
    embedding_service: CountingEmbedding,
    fake_completion: FakeCompletion,
) -> None:
    resp = client.post("/api/ask", json={"question": "anything", "docIds": ["missing"]})
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert embedding_service.batches == []
    assert fake_completion.calls == []


def test_missing_question_is_reported(client: TestClient) -> None:
    resp = client.post("/api/ask", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing question"}


def test_missing_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SCHOLAR_OPENAI_API_KEY")
    deps.reset_dependency_state()
    with TestClient(app) as test_client:
        ask = test_client.post("/api/ask", json={"question": "hi"})
        upload = _upload(test_client, "notes.txt", b"hello")
    for resp in (ask, upload):
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing OPENAI_API_KEY on server"}


def test_missing_pdf_tool(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SCHOLAR_PDFTOTEXT_PATH", str(tmp_path / "no-such-pdftotext"))
    deps.reset_dependency_state()
    with TestClient(app) as test_client:
        resp = _upload(test_client, "paper.pdf", b"%PDF-1.4 fake", "application/pdf")
        listing = test_client.get("/api/docs").json()
    assert resp.status_code == 501
    body = resp.json()
    assert body["error"] == "PDFTOTEXT_MISSING"
    assert "poppler" in body["fix"].lower()
    assert listing == {"docs": []}


def test_upload_too_large(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SCHOLAR_MAX_UPLOAD_BYTES", "100")
    deps.reset_dependency_state()
    with TestClient(app) as test_client:
        resp = _upload(test_client, "big.txt", b"x" * 1000)
    assert resp.status_code == 413
    assert resp.json() == {"error": "LIMIT_FILE_SIZE"}
    assert list((tmp_path / "uploads").iterdir()) == []


def test_summarize_unknown_document(client: TestClient) -> None:
    resp = client.post("/api/summarize", json={"docId": "nope"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Document not found"}


def test_study_tools(client: TestClient, fake_completion: FakeCompletion) -> None:
    doc_id = _upload(client, "cells.txt", b"Mitochondria produce ATP for the cell.").json()["uploaded"][0]["id"]
    fake_completion.replies.extend(
        [
            "- Mitochondria make ATP",
            '{"flashcards":[{"question":"What makes ATP?","answer":"Mitochondria"}]}',
            '{"questions":[{"question":"ATP source?","options":["Nucleus","Mitochondria"],"correctIndex":1}]}',
        ]
    )
    assert client.post("/api/summarize", json={"docId": doc_id}).json() == {"summary": "- Mitochondria make ATP"}

    cards = client.post("/api/flashcards", json={"docId": doc_id, "count": 1}).json()
    assert cards == {"flashcards": [{"question": "What makes ATP?", "answer": "Mitochondria"}]}

    quiz = client.post("/api/quiz", json={"docId": doc_id, "count": 1}).json()
    assert quiz["questions"][0]["options"] == ["Nucleus", "Mitochondria"]
    assert quiz["questions"][0]["correctIndex"] == 1


def test_glossary_and_learning_plan_routes(client: TestClient, fake_completion: FakeCompletion) -> None:
    doc_id = _upload(client, "cells.txt", b"Osmosis moves water across membranes.").json()["uploaded"][0]["id"]
    fake_completion.replies.extend(
        [
            '{"terms":[{"term":"Osmosis","definition":"Water moving across a membrane."}]}',
            '{"planTitle":"Membranes","steps":[{"stepNumber":1,"title":"Read",'
            '"description":"Skim the notes","expectedTime":"20 minutes"}]}',
        ]
    )
    glossary = client.post("/api/glossary", json={"docId": doc_id})
    assert glossary.status_code == 200
    assert glossary.json() == {"terms": [{"term": "Osmosis", "definition": "Water moving across a membrane."}]}

    plan = client.post("/api/learning-plan", json={"docId": doc_id})
    assert plan.status_code == 200
    assert plan.json() == {
        "planTitle": "Membranes",
        "steps": [{"title": "Read", "description": "Skim the notes", "stepNumber": 1, "expectedTime": "20 minutes"}],
    }
    assert client.post("/api/glossary", json={"docId": "missing"}).status_code == 404


def test_ask_uses_configured_top_k(
    monkeypatch: pytest.MonkeyPatch,
    embedding_service: CountingEmbedding,
    fake_completion: FakeCompletion,
    sample_text: str,
) -> None:
    monkeypatch.setenv("SCHOLAR_TOP_K", "2")
    deps.reset_dependency_state()
    app.dependency_overrides[deps.get_embedding_service] = lambda: embedding_service
    app.dependency_overrides[deps.get_completion_service] = lambda: fake_completion
    try:
        with TestClient(app) as test_client:
            _upload(test_client, "notes.txt", sample_text.encode())
            default_k = test_client.post("/api/ask", json={"question": "word"}).json()
            explicit_k = test_client.post("/api/ask", json={"question": "word", "k": 5}).json()
    finally:
        app.dependency_overrides.clear()
    assert len(default_k["citations"]) == 2
    assert len(explicit_k["citations"]) == 5


def test_malformed_model_output(client: TestClient, fake_completion: FakeCompletion) -> None:
    doc_id = _upload(client, "cells.txt", b"Ribosomes build proteins.").json()["uploaded"][0]["id"]
    fake_completion.replies.append("Here you go: flashcards!")
    resp = client.post("/api/flashcards", json={"docId": doc_id})
    assert resp.status_code == 502
    assert resp.json() == {"error": "Invalid JSON returned by model"}


def test_corrupt_store_lists_empty(client: TestClient, tmp_path: Path) -> None:
    store_path = tmp_path / "data" / "store.json"
    store_path.parent.mkdir(parents=True, exist_ok=True)
    store_path.write_text("{definitely not json")
    resp = client.get("/api/docs")
    assert resp.status_code == 200
    assert resp.json() == {"docs": []}


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/api/health")
    resp = client.get("/api/metrics")
    assert resp.status_code == 200
    assert "scholar_requests_total" in resp.text
