"""Helpers to load and validate the story list JSON schema."""

from __future__ import annotations

import json
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import ValidationError


def _project_root() -> Path:
    # __file__ -> src/shift_news/schema.py; repo root is three levels up
    return Path(__file__).resolve().parents[2]


def default_schema_path() -> Path:
    """Return the path to the canonical story schema file."""
    return _project_root() / "docs" / "templates" / "story_schema.json"


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the story schema as a dictionary."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def _published(entry: Dict[str, Any]) -> datetime:
    return datetime.fromisoformat(str(entry["publishedAt"]).replace("Z", "+00:00"))


def list_errors(payload: List[Dict[str, Any]]) -> List[str]:
    """
    Check the rules that span stories and so cannot live in the item schema:
    one entry per link (or id when a story has no link) and newest first.
    """
    problems: List[str] = []
    seen: Dict[str, int] = {}
    for index, entry in enumerate(payload):
        key = entry.get("urlEN") or entry.get("urlAR") or entry.get("id")
        if key in seen:
            problems.append(f"{index}: duplicate of story {seen[key]} ({key})")
        else:
            seen[key] = index
    for index in range(1, len(payload)):
        if _published(payload[index]) > _published(payload[index - 1]):
            problems.append(f"{index}: newer than the story before it")
    return problems


def validate_story_payload(
    payload: List[Dict[str, Any]], schema: Optional[Dict[str, Any]] = None
) -> List[Dict[str, Any]]:
    """
    Validate a story list against the schema, then against `list_errors`.

    Raises ValueError with a readable message if validation fails.
    """
    schema_dict = schema or load_schema()
    validator = Draft202012Validator(schema_dict, format_checker=FormatChecker())
    errors = list(validator.iter_errors(payload))
    if errors:
        raise ValueError(f"Schema validation failed: {format_errors(errors)}")
    problems = list_errors(payload)
    if problems:
        raise ValueError(f"Story list invalid: {'; '.join(problems)}")
    return payload
