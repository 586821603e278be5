"""Fill the missing language side of stories via batch machine translation.

The filler never mutates a story. It plans a sparse list of `StoryPatch`
updates from the translator's answers and applies them to copies, touching
only fields that are empty or written in the wrong script.

Defaults call the OpenAI API and therefore need `OPENAI_API_KEY`; tests inject
a plain callable instead.
"""

from __future__ import annotations

import json
import re
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from openai import OpenAI, OpenAIError

from .log import get_logger
from .models import Lang, Story, StoryPatch

logger = get_logger()

DEFAULT_BATCH_CAP = 20
_ARABIC_LETTER = re.compile(r"[\u0600-\u06ff]")
_LATIN_LETTER = re.compile(r"[A-Za-z]")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass(frozen=True)
class TranslationPair:
    title: str
    summary: str


TranslateFn = Callable[[Sequence[TranslationPair], Lang], Sequence[Any]]


@dataclass
class FillResult:
    stories: List[Story]
    translated_count: int = 0
    patches: List[StoryPatch] = field(default_factory=list)


# --- Script checks ---------------------------------------------------------


def looks_arabic(text: str) -> bool:
    """True when Arabic letters outnumber Latin ones."""
    arabic = len(_ARABIC_LETTER.findall(text or ""))
    latin = len(_LATIN_LETTER.findall(text or ""))
    return arabic > 0 and arabic >= latin


def is_native(value: str, lang: Lang) -> bool:
    """Whether a field holds non-empty text in the script of `lang`."""
    if not (value or "").strip():
        return False
    return looks_arabic(value) if lang is Lang.AR else not looks_arabic(value)


def _field(story: Story, name: str, lang: Lang) -> str:
    return getattr(story, f"{name}_{lang.value.lower()}")


def needs_fill(story: Story, target: Lang) -> bool:
    """Source side is native and the target side is missing or in the wrong script."""
    source = target.other
    return is_native(_field(story, "title", source), source) and not is_native(
        _field(story, "title", target), target
    )


# --- Planning and applying -------------------------------------------------


def build_batch(stories: Sequence[Story], target: Lang, cap: int = DEFAULT_BATCH_CAP) -> List[int]:
    """Indices of stories needing a `target` fill, first `cap` only."""
    indices = [idx for idx, story in enumerate(stories) if needs_fill(story, target)]
    return indices[: max(0, cap)]


def batch_pairs(stories: Sequence[Story], indices: Sequence[int], target: Lang) -> List[TranslationPair]:
    source = target.other
    return [
        TranslationPair(
            title=_field(stories[idx], "title", source),
            summary=_field(stories[idx], "summary", source),
        )
        for idx in indices
    ]


def _entry_fields(entry: Any) -> Dict[str, str]:
    if not isinstance(entry, dict):
        return {}
    fields: Dict[str, str] = {}
    for name in ("title", "summary"):
        value = entry.get(name)
        if isinstance(value, str) and value.strip():
            fields[name] = value.strip()
    return fields


def plan_fills(
    stories: Sequence[Story],
    indices: Sequence[int],
    results: Sequence[Any],
    target: Lang,
) -> List[StoryPatch]:
    """Translate batch answers into patches, position by position."""
    source = target.other
    suffix = target.value.lower()
    patches: List[StoryPatch] = []
    for position, idx in enumerate(indices):
        if position >= len(results):
            break
        returned = _entry_fields(results[position])
        if not returned:
            continue
        story = stories[idx]
        for name, value in returned.items():
            if not is_native(_field(story, name, target), target):
                patches.append(StoryPatch(idx, f"{name}_{suffix}", value))
        for name in ("source", "url"):
            if not _field(story, name, target) and _field(story, name, source):
                patches.append(StoryPatch(idx, f"{name}_{suffix}", _field(story, name, source)))
        patches.append(StoryPatch(idx, f"translated_from_{suffix}", True))
    return patches


def apply_patches(stories: Sequence[Story], patches: Sequence[StoryPatch]) -> List[Story]:
    """Return a new list with patches applied; untouched stories are reused."""
    updates: Dict[int, Dict[str, object]] = defaultdict(dict)
    for patch in patches:
        updates[patch.index][patch.field] = patch.value
    return [
        story.model_copy(update=updates[idx]) if idx in updates else story
        for idx, story in enumerate(stories)
    ]


def _run_batch(
    stories: Sequence[Story],
    indices: Sequence[int],
    target: Lang,
    translate_fn: TranslateFn,
) -> List[StoryPatch]:
    if not indices:
        return []
    pairs = batch_pairs(stories, indices, target)
    try:
        results = list(translate_fn(pairs, target) or [])
    except Exception as exc:
        logger.warning("translation_batch_failed", target=target.value, size=len(pairs), error=str(exc))
        return []
    patches = plan_fills(stories, indices, results, target)
    logger.info(
        "translation_batch_done",
        target=target.value,
        requested=len(pairs),
        returned=len(results),
        filled=sum(1 for p in patches if p.field.startswith("translated_from")),
    )
    return patches


def fill_translations(
    stories: Sequence[Story],
    translate_fn: TranslateFn,
    *,
    batch_cap: int = DEFAULT_BATCH_CAP,
) -> FillResult:
    """
    Request AR fills for EN-only stories and EN fills for AR-only stories.

    The two batches touch disjoint fields, so they run concurrently. A failed
    batch leaves its stories native-only.
    """
    snapshot = list(stories)
    ar_indices = build_batch(snapshot, Lang.AR, batch_cap)
    en_indices = build_batch(snapshot, Lang.EN, batch_cap)
    if not ar_indices and not en_indices:
        return FillResult(stories=snapshot)

    with ThreadPoolExecutor(max_workers=2) as executor:
        ar_future = executor.submit(_run_batch, snapshot, ar_indices, Lang.AR, translate_fn)
        en_future = executor.submit(_run_batch, snapshot, en_indices, Lang.EN, translate_fn)
        patches = ar_future.result() + en_future.result()

    translated = {p.index for p in patches if p.field.startswith("translated_from")}
    return FillResult(
        stories=apply_patches(snapshot, patches),
        translated_count=len(translated),
        patches=patches,
    )


# --- OpenAI translation collaborator --------------------------------------


def build_client(api_key: Optional[str] = None) -> OpenAI:
    """Create an OpenAI client; separated for easier testing."""
    return OpenAI(api_key=api_key)


_SYSTEM_PROMPTS = {
    Lang.AR: (
        "ترجم عناوين وملخصات الأخبار التالية إلى العربية الفصحى المبسطة للموجز الإخباري. "
        "لا تضف آراء. "
        'Return only JSON: {"items": [{"i": <index>, "title": "...", "summary": "..."}]} '
        "with one item per input, in the same order."
    ),
    Lang.EN: (
        "Translate the following news titles and summaries into clear, concise English "
        "for a news brief. No opinions. Keep it crisp. "
        'Return only JSON: {"items": [{"i": <index>, "title": "...", "summary": "..."}]} '
        "with one item per input, in the same order."
    ),
}


def parse_translation_response(text: str, expected: int) -> List[Dict[str, Any]]:
    """
    Align a model answer with the request order.

    Items carrying an `i` index are placed by index; otherwise the list must
    have exactly `expected` entries. Anything that cannot be aligned yields an
    empty list so no story receives another story's translation.
    """
    cleaned = _CODE_FENCE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("translation_response_unparseable", preview=cleaned[:120])
        return []
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        return []

    if data and all(isinstance(e, dict) and isinstance(e.get("i"), int) for e in data):
        aligned: List[Dict[str, Any]] = [{} for _ in range(expected)]
        for entry in data:
            if 0 <= entry["i"] < expected:
                aligned[entry["i"]] = entry
        return aligned

    if len(data) != expected:
        logger.warning("translation_response_misaligned", got=len(data), expected=expected)
        return []
    return [entry if isinstance(entry, dict) else {} for entry in data]


class OpenAITranslator:
    """Batch translator backed by the OpenAI Responses API."""

    def __init__(self, client: OpenAI, model: str = "gpt-4o-mini", temperature: float = 0.2):
        self.client = client
        self.model = model
        self.temperature = temperature

    def __call__(self, pairs: Sequence[TranslationPair], target: Lang) -> List[Dict[str, Any]]:
        if not pairs:
            return []
        payload = [
            {"i": idx, "title": pair.title, "summary": pair.summary}
            for idx, pair in enumerate(pairs)
        ]
        try:
            response = self.client.responses.create(
                model=self.model,
                input=[
                    {"role": "system", "content": _SYSTEM_PROMPTS[target]},
                    {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
                ],
                temperature=self.temperature,
            )
        except OpenAIError as exc:
            logger.warning("translation_request_failed", target=target.value, error=str(exc))
            return []
        text = getattr(response, "output_text", None) or ""
        return parse_translation_response(text, len(pairs))
