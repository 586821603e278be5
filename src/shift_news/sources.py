"""Feed ingestion and headline-API client.

Both collaborators hand back `RawEntry` records and never raise: an
unreachable, slow or malformed source contributes an empty list.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import feedparser
import httpx

from .log import get_logger
from .models import Lang, RawEntry

logger = get_logger()

NEWS_API_URL = "https://newsapi.org/v2/everything"
HEADLINE_QUERY = 'UAE OR Dubai OR "Abu Dhabi"'
USER_AGENT = "shift-news/0.1 (+https://example.com)"
_IMG_SRC = re.compile(r"<img[^>]*src=\"([^\"]+)\"", re.IGNORECASE)


@dataclass(frozen=True)
class FeedSource:
    url: str
    source: str
    lang: Lang


DEFAULT_FEEDS: tuple[FeedSource, ...] = (
    FeedSource("https://www.thenationalnews.com/rss", "The National", Lang.EN),
    FeedSource("https://www.arabianbusiness.com/feed", "Arabian Business", Lang.EN),
    FeedSource("https://www.cnn.com/arabic/feed", "CNN العربية", Lang.AR),
    FeedSource("https://www.skynewsarabia.com/rss", "Sky News عربية", Lang.AR),
)


def _entry_image(entry: Dict[str, Any]) -> Optional[str]:
    """media:content, then enclosure, then the first <img> in the description."""
    for media in entry.get("media_content") or []:
        url = media.get("url") if isinstance(media, dict) else None
        if url:
            return url
    for enclosure in entry.get("enclosures") or []:
        url = enclosure.get("href") or enclosure.get("url")
        if url:
            return url
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and link.get("href"):
            return link["href"]
    match = _IMG_SRC.search(entry.get("summary") or entry.get("description") or "")
    return match.group(1) if match else None


def parse_feed(document: bytes | str, source: FeedSource) -> List[RawEntry]:
    """Extract raw entries from an RSS/Atom document."""
    parsed = feedparser.parse(document)
    entries: List[RawEntry] = []
    for entry in parsed.entries:
        entries.append(
            RawEntry(
                title=entry.get("title") or "",
                description=entry.get("summary") or entry.get("description") or "",
                link=entry.get("link") or "",
                pub_date=entry.get("published") or entry.get("updated"),
                image_url=_entry_image(entry),
                source_name=source.source,
                lang=source.lang,
            )
        )
    return entries


async def fetch_feed(client: httpx.AsyncClient, source: FeedSource) -> List[RawEntry]:
    try:
        response = await client.get(source.url)
        response.raise_for_status()
        entries = parse_feed(response.content, source)
    except Exception as exc:
        logger.warning("feed_fetch_failed", source=source.source, url=source.url, error=str(exc))
        return []
    logger.info("feed_fetched", source=source.source, entries=len(entries))
    return entries


def parse_headlines(payload: Dict[str, Any], lang: Lang) -> List[RawEntry]:
    """Map a NewsAPI `articles` list onto raw entries."""
    entries: List[RawEntry] = []
    for article in payload.get("articles") or []:
        if not isinstance(article, dict):
            continue
        source = article.get("source") or {}
        entries.append(
            RawEntry(
                title=article.get("title") or "",
                description=article.get("description") or "",
                link=article.get("url") or "",
                pub_date=article.get("publishedAt"),
                image_url=article.get("urlToImage"),
                source_name=(source.get("name") if isinstance(source, dict) else None) or "",
                lang=lang,
            )
        )
    return entries


async def fetch_headlines(
    client: httpx.AsyncClient,
    api_key: Optional[str],
    lang: Lang,
    *,
    lookback_hours: int = 72,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> List[RawEntry]:
    """Query the headline API for one language; no key means no request."""
    if not api_key:
        return []
    since = (now or datetime.now(timezone.utc)) - timedelta(hours=lookback_hours)
    params = {
        "q": HEADLINE_QUERY,
        "language": lang.value.lower(),
        "from": since.isoformat(),
        "pageSize": page_size,
        "apiKey": api_key,
    }
    try:
        response = await client.get(NEWS_API_URL, params=params)
        response.raise_for_status()
        entries = parse_headlines(response.json(), lang)
    except Exception as exc:
        logger.warning("headline_fetch_failed", lang=lang.value, error=str(exc))
        return []
    logger.info("headlines_fetched", lang=lang.value, entries=len(entries))
    return entries


async def gather_entries(
    settings,
    feeds: Sequence[FeedSource] = DEFAULT_FEEDS,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[RawEntry]:
    """
    Fetch every feed and the headline API concurrently.

    Results keep source-list order (feeds first, then EN and AR headlines) so
    clustering stays deterministic for a given set of responses.
    """
    async with httpx.AsyncClient(
        timeout=settings.feed_timeout_s,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    ) as client:
        tasks = [fetch_feed(client, feed) for feed in feeds]
        for lang in (Lang.EN, Lang.AR):
            tasks.append(
                fetch_headlines(
                    client,
                    settings.news_api_key,
                    lang,
                    lookback_hours=settings.headline_lookback_hours,
                    page_size=settings.headline_page_size,
                )
            )
        batches = await asyncio.gather(*tasks)
    return [entry for batch in batches for entry in batch]
