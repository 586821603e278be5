"""Turn clusters into canonical bilingual stories."""

from __future__ import annotations

import hashlib
from typing import Iterable, List, Optional, Sequence

from .clustering import Cluster
from .models import FeedItem, Lang, Story
from .normalize import guess_category, is_placeholder_image, placeholder_image
from .publishers import priority_rank

DEFAULT_SUMMARY_WORDS = 70
ELLIPSIS = "…"


def pick_best(items: Sequence[FeedItem], lang: Lang) -> Optional[FeedItem]:
    """Preferred publisher first; among equals, the most recent report."""
    if not items:
        return None
    ranked = sorted(
        items,
        key=lambda item: (priority_rank(item.host, lang), -item.published_at.timestamp()),
    )
    return ranked[0]


def cap_words(text: str, limit: int = DEFAULT_SUMMARY_WORDS) -> str:
    words = (text or "").split()
    if len(words) <= limit:
        return " ".join(words)
    return " ".join(words[:limit]) + ELLIPSIS


def story_id(item: FeedItem) -> str:
    seed = f"{item.source_name}|{item.title}|{item.published_at.isoformat()}"
    return hashlib.sha1(seed.encode("utf-8")).hexdigest()[:16]


def _story_image(base: FeedItem, cluster_items: Iterable[FeedItem], category: str) -> str:
    if base.image and not is_placeholder_image(base.image):
        return base.image
    for item in cluster_items:
        if item.image and not is_placeholder_image(item.image):
            return item.image
    return placeholder_image(category)


def canonicalize(cluster: Cluster, *, summary_words: int = DEFAULT_SUMMARY_WORDS) -> Optional[Story]:
    """Build one `Story` from a cluster, or None if it has no EN/AR item."""
    en_items = [item for item in cluster.items if item.lang is Lang.EN]
    ar_items = [item for item in cluster.items if item.lang is Lang.AR]
    best_en = pick_best(en_items, Lang.EN)
    best_ar = pick_best(ar_items, Lang.AR)
    if best_en is None and best_ar is None:
        return None

    base = best_en or best_ar
    category = base.category_guess or guess_category(base.title, base.description)
    published_at = max(item.published_at for item in cluster.items)

    fields = {
        "id": story_id(base),
        "category": category,
        "published_at": published_at,
        "image_url": _story_image(base, cluster.items, category),
    }
    if best_en is not None:
        fields.update(
            title_en=best_en.title,
            summary_en=cap_words(best_en.description, summary_words),
            source_en=best_en.source_name,
            url_en=best_en.url,
        )
    if best_ar is not None:
        fields.update(
            title_ar=best_ar.title,
            summary_ar=cap_words(best_ar.description, summary_words),
            source_ar=best_ar.source_name,
            url_ar=best_ar.url,
        )
    return Story(**fields)


def canonicalize_all(
    clusters: Iterable[Cluster], *, summary_words: int = DEFAULT_SUMMARY_WORDS
) -> List[Story]:
    stories: List[Story] = []
    for cluster in clusters:
        story = canonicalize(cluster, summary_words=summary_words)
        if story is not None:
            stories.append(story)
    return stories
