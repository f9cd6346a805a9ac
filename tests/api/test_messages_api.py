from __future__ import annotations

import pytest

from backend.app import create_app
from engine.config import RecallConfig
from engine.data.page_store import PageStore
from engine.runtime import build_runtime

FOX = "The quick brown fox jumps over the lazy dog. " * 10


@pytest.fixture
def client(store: PageStore):
    runtime = build_runtime(RecallConfig(), store=store, use_llm=False)
    app = create_app(runtime=runtime)
    app.config["TESTING"] = True
    yield app.test_client()
    runtime.close()


def _send(client, payload):  # type: ignore[no-untyped-def]
    response = client.post("/api/messages", json=payload)
    return response.status_code, response.get_json()


def _save(client, url: str, title: str) -> dict:  # type: ignore[no-untyped-def]
    status, body = _send(
        client,
        {"type": "PAGE_CONTENT", "data": {"url": url, "title": title, "text": FOX}},
    )
    assert status == 200
    return body


def test_page_content_saves_and_enriches(client) -> None:  # type: ignore[no-untyped-def]
    body = _save(client, "https://fox.dev", "Fox Facts")

    assert body["success"] is True
    assert body["tags"] == ["Quick", "Brown", "Jumps", "Over", "Lazy"]
    assert body["relatedPages"] == 0
    assert isinstance(body["pageId"], int)


def test_page_content_reports_related_preview(client) -> None:  # type: ignore[no-untyped-def]
    _save(client, "https://fox.dev", "Fox Facts")
    body = _save(client, "https://dog.dev", "Dog Facts")

    assert body["relatedPages"] == 1
    assert body["related"][0]["title"] == "Fox Facts"
    assert body["related"][0]["commonTags"] == ["Quick", "Brown", "Jumps", "Over", "Lazy"]


def test_short_page_is_not_saved(client) -> None:  # type: ignore[no-untyped-def]
    status, body = _send(
        client,
        {"type": "PAGE_CONTENT", "data": {"url": "https://tiny.dev", "title": None, "text": "hi"}},
    )

    assert status == 200
    assert body == {"success": False, "error": "content too short"}


def test_search_and_get_all(client) -> None:  # type: ignore[no-untyped-def]
    _save(client, "https://fox.dev", "Fox Facts")
    _save(client, "https://py.dev", "Python Tutorial")

    _, found = _send(client, {"type": "SEARCH_PAGES", "query": "Pyhton"})
    assert [page["title"] for page in found["results"]] == ["Python Tutorial"]

    _, everything = _send(client, {"type": "SEARCH_PAGES", "query": ""})
    assert [page["title"] for page in everything["results"]] == ["Python Tutorial", "Fox Facts"]

    _, listed = _send(client, {"type": "GET_ALL_PAGES"})
    assert [page["title"] for page in listed["results"]] == ["Fox Facts", "Python Tutorial"]
    assert "fullText" in listed["results"][0]


def test_stats_delete_and_clear(client) -> None:  # type: ignore[no-untyped-def]
    first = _save(client, "https://fox.dev", "Fox Facts")
    _save(client, "https://dog.dev", "Dog Facts")

    _, stats = _send(client, {"type": "GET_STATS"})
    assert stats["success"] is True
    assert stats["stats"]["totalPages"] == 2
    assert stats["stats"]["totalTags"] == 5

    _, deleted = _send(client, {"type": "DELETE_PAGE", "pageId": first["pageId"]})
    assert deleted == {"success": True}
    _, again = _send(client, {"type": "DELETE_PAGE", "pageId": first["pageId"]})
    assert again == {"success": True}

    _, cleared = _send(client, {"type": "CLEAR_ALL"})
    assert cleared == {"success": True}
    _, stats = _send(client, {"type": "GET_STATS"})
    assert stats["stats"] == {
        "totalPages": 0,
        "totalTags": 0,
        "oldestEntry": None,
        "newestEntry": None,
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "NOT_A_MESSAGE"},
        {"type": "DELETE_PAGE"},
        {"type": "PAGE_CONTENT", "data": {"url": "   ", "text": FOX}},
        {"query": "missing type"},
    ],
)
def test_invalid_messages_are_rejected(client, payload) -> None:  # type: ignore[no-untyped-def]
    status, body = _send(client, payload)

    assert status == 400
    assert body["success"] is False
    assert body["error"]


def test_non_object_body_is_rejected(client) -> None:  # type: ignore[no-untyped-def]
    status, body = _send(client, ["GET_STATS"])

    assert status == 400
    assert body == {"success": False, "error": "expected a JSON object"}


def test_storage_failure_is_reported(client, store: PageStore) -> None:  # type: ignore[no-untyped-def]
    store.close()

    status, body = _send(client, {"type": "GET_ALL_PAGES"})

    assert status == 200
    assert body["success"] is False
    assert "closed" in body["error"]


def test_health_reports_capabilities(client) -> None:  # type: ignore[no-untyped-def]
    response = client.get("/health", headers={"X-Correlation-Id": "abc123"})

    assert response.status_code == 200
    assert response.headers["X-Correlation-Id"] == "abc123"
    body = response.get_json()
    assert body["ok"] is True
    assert [item["name"] for item in body["capabilities"]] == ["summarizer", "tagger"]


def test_page_url_is_stored_verbatim(client) -> None:  # type: ignore[no-untyped-def]
    _save(client, "https://fox.dev/ ", "Fox Facts")

    _, listed = _send(client, {"type": "GET_ALL_PAGES"})
    assert [page["url"] for page in listed["results"]] == ["https://fox.dev/ "]
