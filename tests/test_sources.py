import asyncio
from datetime import datetime, timezone

import httpx

from shift_news.config import Settings
from shift_news.models import Lang
from shift_news.sources import (
    FeedSource,
    fetch_feed,
    fetch_headlines,
    gather_entries,
    parse_feed,
    parse_headlines,
)

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example</title>
    <item>
      <title><![CDATA[Dubai metro opens]]></title>
      <link>https://example.com/metro</link>
      <description>Fourteen stations.</description>
      <pubDate>Tue, 10 Jun 2025 08:30:00 +0400</pubDate>
      <media:content url="https://cdn.example.com/media.jpg" medium="image" />
    </item>
    <item>
      <title>Abu Dhabi airport expands</title>
      <link>https://example.com/airport</link>
      <description>New terminal.</description>
      <enclosure url="https://cdn.example.com/enclosure.jpg" type="image/jpeg" length="0" />
    </item>
    <item>
      <title>Sharjah book fair</title>
      <link>https://example.com/books</link>
      <description><![CDATA[<img src="https://cdn.example.com/inline.jpg"> Record crowds.]]></description>
    </item>
  </channel>
</rss>
"""

FEED = FeedSource("https://example.com/rss", "Example", Lang.EN)


def make_settings(**overrides) -> Settings:
    values = {"NEWS_API_KEY": None, "OPENAI_API_KEY": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_parse_feed_extracts_entries_and_images():
    entries = parse_feed(RSS, FEED)

    assert [e.title for e in entries] == [
        "Dubai metro opens",
        "Abu Dhabi airport expands",
        "Sharjah book fair",
    ]
    assert entries[0].link == "https://example.com/metro"
    assert entries[0].pub_date == "Tue, 10 Jun 2025 08:30:00 +0400"
    assert entries[0].image_url == "https://cdn.example.com/media.jpg"
    assert entries[1].image_url == "https://cdn.example.com/enclosure.jpg"
    assert entries[2].image_url == "https://cdn.example.com/inline.jpg"
    assert entries[1].pub_date is None
    assert all(e.source_name == "Example" and e.lang is Lang.EN for e in entries)


def test_fetch_feed_returns_empty_list_on_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))

    async def run():
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_feed(client, FEED)

    assert asyncio.run(run()) == []


def test_fetch_feed_returns_empty_list_on_network_error():
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as client:
            return await fetch_feed(client, FEED)

    assert asyncio.run(run()) == []


def test_parse_headlines_maps_article_fields():
    payload = {
        "articles": [
            {
                "source": {"name": "Gulf News"},
                "title": "Dubai launches air taxi",
                "description": "First routes announced.",
                "url": "https://gulfnews.com/taxi",
                "urlToImage": "https://cdn.gulfnews.com/taxi.jpg",
                "publishedAt": "2025-06-10T07:00:00Z",
            },
            "not-an-article",
        ]
    }
    entries = parse_headlines(payload, Lang.EN)

    assert len(entries) == 1
    assert entries[0].source_name == "Gulf News"
    assert entries[0].link == "https://gulfnews.com/taxi"
    assert entries[0].pub_date == "2025-06-10T07:00:00Z"


def test_fetch_headlines_without_key_makes_no_request():
    def fail(request):
        raise AssertionError("headline API should not be called without a key")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fail)) as client:
            return await fetch_headlines(client, None, Lang.EN)

    assert asyncio.run(run()) == []


def test_fetch_headlines_sends_language_and_window():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"articles": []})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_headlines(
                client,
                "key-123",
                Lang.AR,
                lookback_hours=72,
                now=datetime(2025, 6, 10, tzinfo=timezone.utc),
            )

    assert asyncio.run(run()) == []
    assert seen["language"] == "ar"
    assert seen["from"].startswith("2025-06-07")
    assert seen["apiKey"] == "key-123"


def test_gather_entries_keeps_source_order_and_skips_failures():
    feeds = [
        FeedSource("https://one.example/rss", "One", Lang.EN),
        FeedSource("https://down.example/rss", "Down", Lang.AR),
        FeedSource("https://two.example/rss", "Two", Lang.EN),
    ]

    def handler(request):
        if request.url.host == "down.example":
            return httpx.Response(503)
        return httpx.Response(200, text=RSS)

    entries = asyncio.run(
        gather_entries(make_settings(), feeds, transport=httpx.MockTransport(handler))
    )

    assert len(entries) == 6
    assert [e.source_name for e in entries] == ["One"] * 3 + ["Two"] * 3
