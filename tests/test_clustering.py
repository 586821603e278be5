from datetime import datetime, timedelta, timezone

from shift_news.clustering import (
    PairingRules,
    can_pair,
    cluster_items,
    jaccard,
    title_tokens,
)
from shift_news.models import FeedItem, Lang
from shift_news.normalize import DEFAULT_IMAGE, extract_host

BASE = datetime(2025, 6, 10, 8, 0, tzinfo=timezone.utc)


def make_item(title: str, url: str, *, hours: float = 0, lang: Lang = Lang.EN) -> FeedItem:
    return FeedItem(
        lang=lang,
        source_name="Wire",
        title=title,
        url=url,
        image=DEFAULT_IMAGE,
        published_at=BASE + timedelta(hours=hours),
        category_guess="UAE",
        host=extract_host(url),
    )


# Jaccard 7/10 = 0.70
TITLE_A = "Dubai metro blue line opens new stations today"
TITLE_B = "Dubai metro blue line opens new stations riders welcome"
# Jaccard 4/10 = 0.40
TITLE_C = "Dubai metro blue line opens new stations"
TITLE_D = "Dubai metro blue line riders praise service"


def test_title_tokens_drop_short_words_stop_words_and_punctuation():
    tokens = title_tokens("The UAE and Saudi sign a deal, for trade!")
    assert tokens == {"uae", "saudi", "sign", "deal", "trade"}


def test_title_tokens_keep_arabic_words():
    assert title_tokens("افتتاح الخط الأزرق في دبي") == {"افتتاح", "الخط", "الأزرق", "دبي"}


def test_jaccard_of_empty_sets_is_zero():
    assert jaccard(frozenset(), frozenset()) == 0.0
    assert jaccard(title_tokens(TITLE_A), title_tokens(TITLE_B)) == 0.7
    assert jaccard(title_tokens(TITLE_C), title_tokens(TITLE_D)) == 0.4


def test_identical_urls_always_pair():
    a = make_item("Completely different words", "https://example.com/story")
    b = make_item("Nothing shared here", "https://example.com/story", hours=48, lang=Lang.AR)
    assert can_pair(a, b)


def test_unrelated_distant_items_never_pair():
    a = make_item("Dubai metro expansion", "https://thenationalnews.com/a")
    b = make_item("Football league results", "https://khaleejtimes.com/b", hours=13)
    assert not can_pair(a, b)
    assert len(cluster_items([a, b])) == 2


def test_cross_family_pair_needs_high_similarity():
    a = make_item(TITLE_A, "https://thenationalnews.com/a")
    b = make_item(TITLE_B, "https://khaleejtimes.com/b", hours=1)
    assert can_pair(a, b)

    c = make_item(TITLE_C, "https://thenationalnews.com/c")
    d = make_item(TITLE_D, "https://khaleejtimes.com/d", hours=1)
    assert not can_pair(c, d)


def test_same_family_pair_uses_lower_threshold():
    c = make_item(TITLE_C, "https://edition.cnn.com/c")
    d = make_item(TITLE_D, "https://arabic.cnn.com/d", hours=1)
    assert can_pair(c, d)


def test_window_applies_to_similarity_rules():
    a = make_item(TITLE_A, "https://thenationalnews.com/a")
    b = make_item(TITLE_A, "https://thenationalnews.com/b", hours=13)
    assert not can_pair(a, b)


def test_thresholds_are_configurable():
    c = make_item(TITLE_C, "https://thenationalnews.com/c")
    d = make_item(TITLE_D, "https://khaleejtimes.com/d", hours=1)
    assert can_pair(c, d, PairingRules(cross_family_jaccard=0.4))


def test_cluster_items_groups_same_event_across_sources():
    items = [
        make_item(TITLE_A, "https://thenationalnews.com/a"),
        make_item("Football league results", "https://gulfnews.com/sport"),
        make_item(TITLE_B, "https://khaleejtimes.com/b", hours=1),
        make_item("افتتاح الخط الأزرق", "https://thenationalnews.com/a", lang=Lang.AR),
    ]
    clusters = cluster_items(items)

    assert [len(c) for c in clusters] == [3, 1]
    assert clusters[0].items[0].url == "https://thenationalnews.com/a"


def test_cluster_items_joins_first_matching_cluster():
    first = make_item("Alpha story", "https://one.com/a")
    second = make_item("Beta story", "https://two.com/b")
    # Same URL as the first cluster, same title as the second: the earlier cluster wins.
    joiner = make_item("Beta story", "https://one.com/a", hours=2)
    clusters = cluster_items([first, second, joiner])
    assert [len(c) for c in clusters] == [2, 1]


def test_cluster_items_is_deterministic():
    items = [
        make_item(TITLE_A, "https://thenationalnews.com/a"),
        make_item(TITLE_B, "https://khaleejtimes.com/b", hours=1),
        make_item(TITLE_D, "https://gulfnews.com/d", hours=2),
    ]
    first = [[i.url for i in c.items] for c in cluster_items(items)]
    second = [[i.url for i in c.items] for c in cluster_items(items)]
    assert first == second
