"""Turn raw feed entries into clean `FeedItem` records.

Every helper here is total: bad markup, unparseable dates and broken URLs are
absorbed into sensible defaults, and only entries without a title or a link
are rejected.
"""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Pattern, Tuple
from urllib.parse import urlparse

from .models import FeedItem, RawEntry

_CDATA_PATTERN = re.compile(r"<!\[CDATA\[([\s\S]*?)\]\]>")
_TAG_PATTERN = re.compile(r"</?[^>]+>")
_SPACE_PATTERN = re.compile(r"\s+")


# Arabic keywords must stand alone as words, optionally behind the article
# or an attached conjunction or preposition.
_AR_LETTER = r"[\u0600-\u06ff]"
_AR_PREFIX = r"(?:وال|بال|ال|و|ب)?"


def _arabic_words(*words: str) -> str:
    return rf"(?<!{_AR_LETTER}){_AR_PREFIX}(?:{'|'.join(words)})(?!{_AR_LETTER})"


# Checked in order; the first match wins. The regional rule sits last because
# almost every story in these feeds mentions the region somewhere.
CATEGORY_RULES: Tuple[Tuple[str, Pattern[str]], ...] = (
    (
        "Business",
        re.compile(
            r"\b(business|economy|economic|market|stocks?|shares|bank|investment|"
            r"investors?|trade|oil|ipo|gdp|revenue|profit|inflation)\b|"
            + _arabic_words(
                "اقتصاد", "اقتصادي", "اقتصادية", "أعمال", "بورصة", "أسهم",
                "استثمار", "استثمارات", "نفط", "مصرف", "تجارة",
            )
        ),
    ),
    (
        "Tech",
        re.compile(
            r"\b(tech|technology|ai|artificial intelligence|startup|software|"
            r"cyber|digital|app|smartphone|apple|google|microsoft|chip)\b|"
            + _arabic_words(
                "تقنية", "تكنولوجيا", "ذكاء اصطناعي", "ذكاء الاصطناعي",
                "رقمي", "رقمية", "تطبيق",
            )
        ),
    ),
    (
        "Sports",
        re.compile(
            r"\b(sports?|football|soccer|cricket|tennis|golf|match|league|cup|"
            r"olympics?|f1|formula|championship)\b|"
            + _arabic_words("رياضة", "كرة القدم", "مباراة", "دوري", "بطولة", "كأس")
        ),
    ),
    (
        "Lifestyle",
        re.compile(
            r"\b(lifestyle|travel|food|restaurants?|fashion|health|wellness|"
            r"culture|art|music|film|movies?|festival)\b|"
            + _arabic_words(
                "سياحة", "سفر", "مطاعم", "أزياء", "صحة", "ثقافة", "فن", "فنون", "مهرجان",
            )
        ),
    ),
    (
        "UAE",
        re.compile(
            r"\b(uae|emirates|emirati|dubai|abu dhabi|sharjah|ajman|fujairah|"
            r"ras al khaimah|umm al quwain|gulf|gcc)\b|"
            + _arabic_words(
                "إمارات", "امارات", "دبي", "أبوظبي", "أبو ظبي", "شارقة", "عجمان",
                "فجيرة", "رأس الخيمة", "أم القيوين", "خليج",
            )
        ),
    ),
)
DEFAULT_CATEGORY = "UAE"

DEFAULT_IMAGE = (
    "https://images.unsplash.com/photo-1469474968028-56623f02e42e"
    "?q=80&w=1200&auto=format&fit=crop"
)
CATEGORY_IMAGES = {
    "UAE": (
        "https://images.unsplash.com/photo-1512453979798-5ea266f8880c"
        "?q=80&w=1200&auto=format&fit=crop"
    ),
    "Business": (
        "https://images.unsplash.com/photo-1444653614773-995cb1ef9efa"
        "?q=80&w=1200&auto=format&fit=crop"
    ),
    "Tech": (
        "https://images.unsplash.com/photo-1518770660439-4636190af475"
        "?q=80&w=1200&auto=format&fit=crop"
    ),
    "Sports": (
        "https://images.unsplash.com/photo-1461896836934-ffe607ba8211"
        "?q=80&w=1200&auto=format&fit=crop"
    ),
    "Lifestyle": (
        "https://images.unsplash.com/photo-1504674900247-0877df9cc836"
        "?q=80&w=1200&auto=format&fit=crop"
    ),
}
PLACEHOLDER_IMAGES = frozenset(CATEGORY_IMAGES.values()) | {DEFAULT_IMAGE}


def strip_markup(text: Optional[str]) -> str:
    """Drop CDATA wrappers and tags, decode entities, collapse whitespace."""
    if not text:
        return ""
    unwrapped = _CDATA_PATTERN.sub(r"\1", text)
    no_tags = _TAG_PATTERN.sub(" ", unwrapped)
    # Encoded markup (&lt;p&gt;) only becomes a tag after decoding.
    decoded = _TAG_PATTERN.sub(" ", html.unescape(no_tags))
    return _SPACE_PATTERN.sub(" ", decoded).strip()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse an RSS (RFC 822) or ISO-8601 timestamp into an aware UTC datetime.

    Missing or unparseable input falls back to `now` (ingestion time).
    """
    fallback = _as_utc(now) if now else datetime.now(timezone.utc)
    txt = (raw or "").strip()
    if not txt:
        return fallback

    try:
        return _as_utc(parsedate_to_datetime(txt))
    except (TypeError, ValueError, IndexError):
        pass

    # fromisoformat rejects a trailing "Z" and "+0000" offsets on older Pythons.
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    else:
        txt = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", txt)
    try:
        return _as_utc(datetime.fromisoformat(txt))
    except ValueError:
        return fallback


def guess_category(title: str, description: str = "") -> str:
    text = f"{title} {description}".lower()
    for category, pattern in CATEGORY_RULES:
        if pattern.search(text):
            return category
    return DEFAULT_CATEGORY


def placeholder_image(category: Optional[str]) -> str:
    return CATEGORY_IMAGES.get(category or "", DEFAULT_IMAGE)


def normalize_image(raw: Optional[str], category: Optional[str]) -> str:
    """Keep absolute http(s) image URLs; anything else becomes a placeholder."""
    candidate = (raw or "").strip()
    if re.match(r"^https?://", candidate, flags=re.IGNORECASE):
        return candidate
    return placeholder_image(category)


def is_placeholder_image(url: str) -> bool:
    return url in PLACEHOLDER_IMAGES


def extract_host(url: str) -> str:
    """Return the URL's hostname without a leading `www.`; empty on failure."""
    try:
        host = urlparse(url).hostname or ""
    except (ValueError, AttributeError):
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def normalize_entry(entry: RawEntry, *, now: Optional[datetime] = None) -> Optional[FeedItem]:
    """Return a clean `FeedItem`, or None when title or link is missing."""
    title = strip_markup(entry.title)
    link = strip_markup(entry.link)
    if not title or not link:
        return None

    description = strip_markup(entry.description)
    category = guess_category(title, description)
    return FeedItem(
        lang=entry.lang,
        source_name=strip_markup(entry.source_name) or extract_host(link),
        title=title,
        description=description,
        url=link,
        image=normalize_image(entry.image_url, category),
        published_at=parse_timestamp(entry.pub_date, now),
        category_guess=category,
        host=extract_host(link),
    )


def normalize_entries(entries, *, now: Optional[datetime] = None) -> list[FeedItem]:
    """Normalize a batch, silently dropping rejected entries."""
    stamp = now or datetime.now(timezone.utc)
    items: list[FeedItem] = []
    for entry in entries:
        item = normalize_entry(entry, now=stamp)
        if item is not None:
            items.append(item)
    return items
