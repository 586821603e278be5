"""Publisher families and per-language source preference."""

from __future__ import annotations

from typing import Dict, Tuple

from .models import Lang


# Ordered (family, host needles). A host joins the first family whose needle it
# contains, so an outlet's English and Arabic domains land in one family.
PUBLISHER_FAMILIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("reuters", ("reuters",)),
    ("apnews", ("apnews", "ap.org")),
    ("bbc", ("bbc",)),
    ("thenational", ("thenational",)),
    ("khaleejtimes", ("khaleejtimes",)),
    ("gulfnews", ("gulfnews",)),
    ("arabnews", ("arabnews",)),
    ("aljazeera", ("aljazeera",)),
    ("cnn", ("cnn",)),
    ("skynewsarabia", ("skynewsarabia", "skynews")),
    ("alarabiya", ("alarabiya",)),
    ("arabianbusiness", ("arabianbusiness",)),
    ("wam", ("wam.ae",)),
    ("emaratalyoum", ("emaratalyoum",)),
    ("albayan", ("albayan",)),
    ("alkhaleej", ("alkhaleej",)),
)


# Lower index wins; families not listed rank after every listed one.
PUBLISHER_PRIORITY: Dict[Lang, Tuple[str, ...]] = {
    Lang.EN: (
        "reuters",
        "apnews",
        "bbc",
        "thenational",
        "khaleejtimes",
        "gulfnews",
        "arabnews",
        "aljazeera",
        "cnn",
    ),
    Lang.AR: (
        "wam",
        "skynewsarabia",
        "alarabiya",
        "bbc",
        "aljazeera",
        "cnn",
        "emaratalyoum",
        "albayan",
        "alkhaleej",
    ),
}


def publisher_family(host: str) -> str:
    """Collapse a host onto its known outlet, or return the host itself."""
    lowered = (host or "").lower()
    if not lowered:
        return ""
    for family, needles in PUBLISHER_FAMILIES:
        if any(needle in lowered for needle in needles):
            return family
    return lowered


def priority_rank(host: str, lang: Lang) -> int:
    preferred = PUBLISHER_PRIORITY.get(lang, ())
    family = publisher_family(host)
    try:
        return preferred.index(family)
    except ValueError:
        return len(preferred)
