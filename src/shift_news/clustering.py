"""Greedy first-fit clustering of feed items into same-event groups.

Items are visited in input order. Each item joins the first existing cluster
(in creation order) holding at least one compatible member, or starts a new
cluster. Membership therefore depends on input order; callers that need stable
output must supply a stable order (source list order, then feed order).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List

from .models import FeedItem
from .publishers import publisher_family

STOP_WORDS = frozenset({"the", "and", "for", "with", "from", "this", "that"})
_NON_WORD = re.compile(r"[^a-z0-9\u0600-\u06ff\s]")

DEFAULT_SAME_FAMILY_JACCARD = 0.35
DEFAULT_CROSS_FAMILY_JACCARD = 0.60
DEFAULT_WINDOW_HOURS = 12.0


@dataclass
class Cluster:
    """Items believed to describe one real-world event."""

    items: List[FeedItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class PairingRules:
    same_family_jaccard: float = DEFAULT_SAME_FAMILY_JACCARD
    cross_family_jaccard: float = DEFAULT_CROSS_FAMILY_JACCARD
    window_hours: float = DEFAULT_WINDOW_HOURS

    @classmethod
    def from_settings(cls, settings) -> "PairingRules":
        return cls(
            same_family_jaccard=settings.same_family_jaccard,
            cross_family_jaccard=settings.cross_family_jaccard,
            window_hours=settings.pair_window_hours,
        )


def title_tokens(title: str) -> FrozenSet[str]:
    cleaned = _NON_WORD.sub(" ", (title or "").lower())
    return frozenset(
        tok for tok in cleaned.split() if len(tok) > 2 and tok not in STOP_WORDS
    )


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def _within_window(a: FeedItem, b: FeedItem, hours: float) -> bool:
    gap = abs((a.published_at - b.published_at).total_seconds())
    return gap <= hours * 3600


def can_pair(a: FeedItem, b: FeedItem, rules: PairingRules = PairingRules()) -> bool:
    """True when two items look like reports of the same event."""
    if a.url == b.url:
        return True
    if not _within_window(a, b, rules.window_hours):
        return False

    similarity = jaccard(title_tokens(a.title), title_tokens(b.title))
    family_a = publisher_family(a.host)
    if family_a and family_a == publisher_family(b.host):
        if similarity >= rules.same_family_jaccard:
            return True
    return similarity >= rules.cross_family_jaccard


def cluster_items(
    items: Iterable[FeedItem], rules: PairingRules = PairingRules()
) -> List[Cluster]:
    clusters: List[Cluster] = []
    for item in items:
        for candidate in clusters:
            if any(can_pair(item, member, rules) for member in candidate.items):
                candidate.items.append(item)
                break
        else:
            clusters.append(Cluster(items=[item]))
    return clusters
