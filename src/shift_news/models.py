"""Data models shared by the story pipeline."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


class Lang(str, Enum):
    EN = "EN"
    AR = "AR"

    @property
    def other(self) -> "Lang":
        return Lang.AR if self is Lang.EN else Lang.EN


@dataclass(frozen=True)
class RawEntry:
    """One article exactly as a feed or the headline API handed it over."""

    title: str
    description: str
    link: str
    pub_date: Optional[str]
    image_url: Optional[str]
    source_name: str
    lang: Lang


class FeedItem(BaseModel):
    """One normalized article from one source in one language."""

    model_config = ConfigDict(frozen=True)

    lang: Lang
    source_name: str
    title: str = Field(..., min_length=1)
    description: str = ""
    url: str = Field(..., min_length=1)
    image: str
    published_at: datetime
    category_guess: Optional[str] = None
    host: str = ""


class Story(BaseModel):
    """Canonical bilingual record for one cluster of same-event reports."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    category: str
    published_at: datetime = Field(..., alias="publishedAt")
    image_url: str = Field("", alias="imageUrl")

    title_en: str = Field("", alias="titleEN")
    summary_en: str = Field("", alias="summaryEN")
    source_en: str = Field("", alias="sourceEN")
    url_en: str = Field("", alias="urlEN")
    translated_from_en: bool = Field(False, alias="translatedFromEN")

    title_ar: str = Field("", alias="titleAR")
    summary_ar: str = Field("", alias="summaryAR")
    source_ar: str = Field("", alias="sourceAR")
    url_ar: str = Field("", alias="urlAR")
    translated_from_ar: bool = Field(False, alias="translatedFromAR")

    def to_payload(self) -> dict:
        """JSON-ready dict using the public camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


class StoryPatch(NamedTuple):
    """A single field update produced by the translation filler."""

    index: int
    field: str
    value: object
