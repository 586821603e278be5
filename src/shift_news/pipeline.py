"""One end-to-end run: fetch → normalize → cluster → canonicalize → translate → assemble.

Nothing is cached between runs; every call redoes the full fetch and clustering.
Fetching and translation are injectable so the core can run offline.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

from .assembly import assemble
from .canonical import canonicalize_all
from .clustering import PairingRules, cluster_items
from .config import Settings, get_settings
from .log import get_logger
from .models import RawEntry, Story
from .normalize import normalize_entries
from .sources import DEFAULT_FEEDS, FeedSource, gather_entries
from .translation import OpenAITranslator, TranslateFn, build_client, fill_translations

logger = get_logger()

FetchFn = Callable[[Settings, Sequence[FeedSource]], Awaitable[List[RawEntry]]]


@dataclass
class PipelineResult:
    stories: List[Story]
    data_source: str = "live"
    translation: str = "off"
    translated_count: int = 0
    item_count: int = 0
    cluster_count: int = 0
    story_count: int = 0
    notes: List[str] = field(default_factory=list)

    def headers(self) -> dict[str, str]:
        """Informational response headers describing this run."""
        headers = {
            "x-shift-data": self.data_source,
            "x-shift-trans": self.translation,
            "x-shift-items": str(self.item_count),
            "x-shift-clusters": str(self.cluster_count),
            "x-shift-stories": str(self.story_count),
        }
        if self.translation == "on":
            headers["x-shift-trans-count"] = str(self.translated_count)
        return headers

    def payload(self) -> list[dict]:
        return [story.to_payload() for story in self.stories]


def translation_mode(settings: Settings, requested: bool, *, injected: bool = False) -> str:
    """`on`, `off` or `missing-key` for the run's translation switch."""
    if not (requested or settings.translate_always):
        return "off"
    if injected or settings.openai_api_key:
        return "on"
    return "missing-key"


def _default_translator(settings: Settings) -> TranslateFn:
    return OpenAITranslator(
        build_client(settings.openai_api_key),
        model=settings.translation_model,
        temperature=settings.translation_temperature,
    )


def build_stories(
    entries: Sequence[RawEntry],
    settings: Optional[Settings] = None,
    *,
    translate: bool = False,
    translate_fn: Optional[TranslateFn] = None,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """Run the CPU-bound core over already-fetched raw entries."""
    settings = settings or get_settings()
    stamp = now or datetime.now(timezone.utc)

    items = normalize_entries(entries, now=stamp)
    clusters = cluster_items(items, PairingRules.from_settings(settings))
    stories = canonicalize_all(clusters, summary_words=settings.summary_word_cap)
    # Newest first so the translation cap spends itself on the top of the list.
    stories.sort(key=lambda story: story.published_at, reverse=True)

    mode = translation_mode(settings, translate, injected=translate_fn is not None)
    translated_count = 0
    if mode == "on" and stories:
        fill = fill_translations(
            stories,
            translate_fn or _default_translator(settings),
            batch_cap=settings.translate_batch_cap,
        )
        stories = fill.stories
        translated_count = fill.translated_count

    final, used_demo = assemble(stories, max_stories=settings.max_stories, now=stamp)
    result = PipelineResult(
        stories=final,
        data_source="demo" if used_demo else "live",
        translation=mode,
        translated_count=translated_count,
        item_count=len(items),
        cluster_count=len(clusters),
        story_count=len(final),
    )
    logger.info(
        "pipeline_completed",
        entries=len(entries),
        items=result.item_count,
        clusters=result.cluster_count,
        stories=result.story_count,
        data=result.data_source,
        translation=mode,
        translated=translated_count,
    )
    return result


async def run_pipeline(
    settings: Optional[Settings] = None,
    *,
    translate: bool = False,
    feeds: Sequence[FeedSource] = DEFAULT_FEEDS,
    fetch_fn: Optional[FetchFn] = None,
    translate_fn: Optional[TranslateFn] = None,
) -> PipelineResult:
    """Fetch all sources concurrently, then run the core over the results."""
    settings = settings or get_settings()
    fetch = fetch_fn or gather_entries
    entries = await fetch(settings, feeds)
    return await asyncio.to_thread(
        build_stories, entries, settings, translate=translate, translate_fn=translate_fn
    )
