"""FastAPI surface for the bilingual story pipeline."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .log import configure_logging, get_logger
from .pipeline import PipelineResult, run_pipeline
from .sources import HEADLINE_QUERY, NEWS_API_URL

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"

configure_logging("api", level=get_settings().log_level)
logger = get_logger()

app = FastAPI(title="Shift News")


def _add_cors(app: FastAPI) -> None:
    """Allow the browser front end to call the API from another origin."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )


_add_cors(app)


async def _run_story_pipeline(translate: bool) -> PipelineResult:
    """Indirection point so tests can swap the live pipeline out."""
    return await run_pipeline(get_settings(), translate=translate)


def _http_client(**kwargs: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=get_settings().feed_timeout_s, **kwargs)


def _header_safe(text: str) -> str:
    return text.encode("latin-1", "replace").decode("latin-1").replace("\n", " ")[:200]


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/stories")
async def stories(translate: str | None = None) -> JSONResponse:
    """
    Return the canonical story list.

    Always answers 200 with a JSON array; on an unexpected failure the array is
    empty and `x-shift-reason` carries the error.
    """
    try:
        result = await _run_story_pipeline(translate == "1")
    except Exception as exc:
        logger.exception("pipeline_failed", error=str(exc))
        return JSONResponse(
            content=[],
            headers={"x-shift-data": "error", "x-shift-reason": _header_safe(str(exc))},
        )
    return JSONResponse(content=result.payload(), headers=result.headers())


@app.get("/api/diag")
async def diag() -> Dict[str, Any]:
    """Check that the headline API key is loaded and the API answers."""
    settings = get_settings()
    has_key = bool(settings.news_api_key)
    reachable = False
    count = 0
    status = "skip"
    if has_key:
        since = datetime.now(timezone.utc) - timedelta(hours=settings.headline_lookback_hours)
        params = {
            "q": HEADLINE_QUERY,
            "language": "en",
            "from": since.isoformat(),
            "pageSize": 5,
            "apiKey": settings.news_api_key,
        }
        try:
            async with _http_client() as client:
                response = await client.get(NEWS_API_URL, params=params)
            status = str(response.status_code)
            data = response.json()
            articles = (data.get("articles") if isinstance(data, dict) else None) or []
            reachable = bool(articles)
            count = len(articles)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("diag_headlines_failed", error=str(exc))
    return {
        "envKeyLoaded": has_key,
        "newsApiReachable": reachable,
        "sampleCount": count,
        "httpStatus": status,
    }


@app.get("/api/diag-openai")
async def diag_openai() -> Dict[str, Any]:
    """Check that the translation key is present and accepted."""
    key = get_settings().openai_api_key
    if not key:
        return {"ok": False, "reason": "missing OPENAI_API_KEY"}
    try:
        async with _http_client(headers={"Authorization": f"Bearer {key}"}) as client:
            response = await client.get(OPENAI_MODELS_URL)
    except httpx.HTTPError as exc:
        return {"ok": False, "reason": str(exc) or "network-error"}
    return {
        "ok": response.is_success,
        "status": response.status_code,
        "body": response.text[:300],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shift_news.server:app",
        host=os.getenv("SHIFT_HOST", "0.0.0.0"),
        port=int(os.getenv("SHIFT_PORT", "8000")),
        reload=os.getenv("SHIFT_RELOAD", "false").lower() == "true",
    )
