"""Final shaping of the story list returned to callers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .models import Story
from .normalize import DEFAULT_IMAGE

DEFAULT_MAX_STORIES = 150


def dedup_key(story: Story) -> str:
    return story.url_en or story.url_ar or story.id


def demo_story(now: Optional[datetime] = None) -> Story:
    """Fixed bilingual placeholder shown when every source came back empty."""
    return Story(
        id="demo-uae-traffic-safety",
        category="UAE",
        published_at=now or datetime.now(timezone.utc),
        image_url=DEFAULT_IMAGE,
        title_en="UAE Cabinet announces new traffic safety measures",
        summary_en=(
            "Authorities outlined late-night heavy vehicle restrictions to ease "
            "congestion and improve safety."
        ),
        source_en="Example",
        url_en="https://example.com/uae-news",
        title_ar="مجلس الوزراء الإماراتي يعلن إجراءات جديدة للسلامة المرورية",
        summary_ar=(
            "حددت السلطات قيوداً على حركة المركبات الثقيلة في ساعات الليل "
            "المتأخرة لتخفيف الازدحام وتحسين السلامة."
        ),
        source_ar="Example",
        url_ar="https://example.com/uae-news",
    )


def assemble(
    stories: Iterable[Story],
    *,
    max_stories: int = DEFAULT_MAX_STORIES,
    now: Optional[datetime] = None,
) -> tuple[List[Story], bool]:
    """
    Deduplicate (first wins), sort newest first and cap the list.

    Returns the list and whether the demo placeholder was substituted.
    """
    seen: set[str] = set()
    unique: List[Story] = []
    for story in stories:
        key = dedup_key(story)
        if key in seen:
            continue
        seen.add(key)
        unique.append(story)

    unique.sort(key=lambda story: story.published_at, reverse=True)
    capped = unique[: max(0, max_stories)]
    if not capped:
        return [demo_story(now)], True
    return capped, False
