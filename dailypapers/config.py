"""Runtime settings for the ingestion and enrichment pipeline.

Every tunable lives on :class:`Settings`. ``load_settings()`` reads overrides
from the environment through :func:`dailypapers.env.get_secret`; tests build a
``Settings`` directly (usually with zero delays).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .env import get_float, get_int, get_secret

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class Settings:
    """Pipeline configuration.

    Attributes:
        database_url: SQLAlchemy URL of the paper store.
        source_base_url: Origin of the Daily Papers site.
        source_timeout_seconds: Timeout for one listing request.
        source_user_agent: Client identity sent to the source.
        max_scrape_days: Ceiling applied to requested day counts.
        since_last_fallback_days: Window used by "since-last" on an empty store.
        upsert_batch_size: Papers per store upsert call.
        upsert_batch_delay_seconds: Pause between upsert batches.
        day_delay_seconds: Pause between listing dates.
        job_log_cap: Maximum rolling log entries kept by the job tracker.
        summary_batch_size: Papers per enrichment batch.
        summary_item_delay_seconds: Pause between papers inside a batch.
        summary_batch_delay_seconds: Pause between enrichment batches.
        openai_api_key: Key for the text-generation API.
        openai_summary_model: Model used for summaries.
        openai_summary_temperature: Sampling temperature for summaries.
    """

    database_url: str = "sqlite:///./dailypapers.sqlite"
    source_base_url: str = "https://huggingface.co"
    source_timeout_seconds: float = 30.0
    source_user_agent: str = DEFAULT_USER_AGENT
    max_scrape_days: int = 365
    since_last_fallback_days: int = 7
    upsert_batch_size: int = 20
    upsert_batch_delay_seconds: float = 0.5
    day_delay_seconds: float = 1.0
    job_log_cap: int = 500
    summary_batch_size: int = 5
    summary_item_delay_seconds: float = 1.0
    summary_batch_delay_seconds: float = 5.0
    openai_api_key: Optional[str] = None
    openai_summary_model: str = "gpt-4o-mini"
    openai_summary_temperature: float = 0.3


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        database_url=get_secret("DATABASE_URL", defaults.database_url),
        source_base_url=get_secret("SOURCE_BASE_URL", defaults.source_base_url).rstrip("/"),
        source_timeout_seconds=get_float(
            "SOURCE_TIMEOUT_SECONDS", defaults.source_timeout_seconds
        ),
        source_user_agent=get_secret("SOURCE_USER_AGENT", defaults.source_user_agent),
        max_scrape_days=get_int("MAX_SCRAPE_DAYS", defaults.max_scrape_days),
        since_last_fallback_days=get_int(
            "SINCE_LAST_FALLBACK_DAYS", defaults.since_last_fallback_days
        ),
        upsert_batch_size=get_int("UPSERT_BATCH_SIZE", defaults.upsert_batch_size),
        upsert_batch_delay_seconds=get_float(
            "UPSERT_BATCH_DELAY_SECONDS", defaults.upsert_batch_delay_seconds
        ),
        day_delay_seconds=get_float("DAY_DELAY_SECONDS", defaults.day_delay_seconds),
        job_log_cap=get_int("JOB_LOG_CAP", defaults.job_log_cap),
        summary_batch_size=get_int("SUMMARY_BATCH_SIZE", defaults.summary_batch_size),
        summary_item_delay_seconds=get_float(
            "SUMMARY_ITEM_DELAY_SECONDS", defaults.summary_item_delay_seconds
        ),
        summary_batch_delay_seconds=get_float(
            "SUMMARY_BATCH_DELAY_SECONDS", defaults.summary_batch_delay_seconds
        ),
        openai_api_key=get_secret("OPENAI_API_KEY"),
        openai_summary_model=get_secret(
            "OPENAI_SUMMARY_MODEL", defaults.openai_summary_model
        ),
        openai_summary_temperature=get_float(
            "OPENAI_SUMMARY_TEMPERATURE", defaults.openai_summary_temperature
        ),
    )
