"""Configuration helpers for the story pipeline."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    news_api_key: str | None = Field(None, alias="NEWS_API_KEY")
    translation_model: str = Field(
        "gpt-4o-mini", description="Model used for batch title/summary translation."
    )
    translation_temperature: float = Field(0.2, description="Translation temperature.")
    translate_always: bool = Field(
        False,
        description="Translate on every run when a key exists, without ?translate=1.",
    )
    same_family_jaccard: float = Field(
        0.35,
        description="Title similarity needed to pair two items from one publisher family.",
    )
    cross_family_jaccard: float = Field(
        0.60,
        description="Title similarity needed to pair items from unrelated publishers.",
    )
    pair_window_hours: float = Field(
        12, description="Maximum publication gap for two reports of one event."
    )
    summary_word_cap: int = Field(70, description="Summary length cap, in words.")
    translate_batch_cap: int = Field(
        20,
        description=(
            "Max stories per translation batch; stories beyond the cap stay "
            "native-only for this run."
        ),
    )
    max_stories: int = Field(150, description="Cap on the returned story list.")
    feed_timeout_s: float = Field(15, description="Per-source HTTP timeout in seconds.")
    headline_lookback_hours: int = Field(
        72, description="How far back the headline API query reaches."
    )
    headline_page_size: int = Field(20, description="Headline API page size.")
    log_level: str = Field("INFO", alias="LOG_LEVEL")


def get_settings() -> Settings:
    """Return a settings instance built from the current environment."""
    return Settings()
