from datetime import datetime, timezone

import httpx
from fastapi.testclient import TestClient

from shift_news import server
from shift_news.assembly import demo_story
from shift_news.models import Story
from shift_news.pipeline import PipelineResult
from shift_news.server import app


def make_client(monkeypatch) -> TestClient:
    monkeypatch.delenv("NEWS_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return TestClient(app)


def _live_result() -> PipelineResult:
    story = Story(
        id="abc123",
        category="UAE",
        published_at=datetime(2025, 6, 10, 8, 0, tzinfo=timezone.utc),
        image_url="https://cdn.example.com/x.jpg",
        title_en="Dubai metro opens",
        summary_en="Fourteen stations.",
        source_en="The National",
        url_en="https://thenationalnews.com/metro",
        title_ar="افتتاح مترو دبي",
        summary_ar="أربع عشرة محطة.",
        source_ar="The National",
        url_ar="https://thenationalnews.com/metro",
        translated_from_ar=True,
    )
    return PipelineResult(
        stories=[story],
        translation="on",
        translated_count=1,
        item_count=3,
        cluster_count=2,
        story_count=1,
    )


def test_health(monkeypatch):
    client = make_client(monkeypatch)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials():
    cors = next(
        m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware"
    )
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_stories_returns_camel_case_payload_and_headers(monkeypatch):
    client = make_client(monkeypatch)
    seen = {}

    async def fake_pipeline(translate):
        seen["translate"] = translate
        return _live_result()

    monkeypatch.setattr("shift_news.server._run_story_pipeline", fake_pipeline)

    resp = client.get("/api/stories", params={"translate": "1"})
    assert resp.status_code == 200
    assert seen["translate"] is True
    data = resp.json()
    assert data[0]["titleEN"] == "Dubai metro opens"
    assert data[0]["translatedFromAR"] is True
    assert data[0]["publishedAt"].startswith("2025-06-10T08:00:00")
    assert resp.headers["x-shift-data"] == "live"
    assert resp.headers["x-shift-trans"] == "on"
    assert resp.headers["x-shift-trans-count"] == "1"
    assert resp.headers["x-shift-items"] == "3"
    assert resp.headers["x-shift-clusters"] == "2"
    assert resp.headers["x-shift-stories"] == "1"


def test_stories_without_flag_does_not_request_translation(monkeypatch):
    client = make_client(monkeypatch)
    seen = {}

    async def fake_pipeline(translate):
        seen["translate"] = translate
        return PipelineResult(stories=[demo_story()], data_source="demo")

    monkeypatch.setattr("shift_news.server._run_story_pipeline", fake_pipeline)

    resp = client.get("/api/stories")
    assert resp.status_code == 200
    assert seen["translate"] is False
    assert resp.headers["x-shift-data"] == "demo"
    assert resp.headers["x-shift-trans"] == "off"
    assert len(resp.json()) == 1


def test_stories_pipeline_crash_still_answers_200_with_empty_list(monkeypatch):
    client = make_client(monkeypatch)

    async def broken_pipeline(translate):
        raise RuntimeError("clustering exploded")

    monkeypatch.setattr("shift_news.server._run_story_pipeline", broken_pipeline)

    resp = client.get("/api/stories")
    assert resp.status_code == 200
    assert resp.json() == []
    assert resp.headers["x-shift-data"] == "error"
    assert "clustering exploded" in resp.headers["x-shift-reason"]


def test_diag_without_key_skips_headline_api(monkeypatch):
    client = make_client(monkeypatch)
    resp = client.get("/api/diag")
    assert resp.status_code == 200
    assert resp.json() == {
        "envKeyLoaded": False,
        "newsApiReachable": False,
        "sampleCount": 0,
        "httpStatus": "skip",
    }


def test_diag_openai_without_key(monkeypatch):
    client = make_client(monkeypatch)
    resp = client.get("/api/diag-openai")
    assert resp.status_code == 200
    assert resp.json() == {"ok": False, "reason": "missing OPENAI_API_KEY"}


def test_diag_answers_200_when_headline_api_returns_a_list(monkeypatch):
    client = make_client(monkeypatch)
    monkeypatch.setenv("NEWS_API_KEY", "test-key")
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
    monkeypatch.setattr(
        server, "_http_client", lambda **kwargs: httpx.AsyncClient(transport=transport)
    )

    resp = client.get("/api/diag")
    assert resp.status_code == 200
    assert resp.json() == {
        "envKeyLoaded": True,
        "newsApiReachable": False,
        "sampleCount": 0,
        "httpStatus": "200",
    }
