"""Content-extraction service configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import optional_env_int, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

EXTRACTION_TIMEOUT_SECONDS = 90.0
DEFAULT_WAIT_TIME_MS = 3000
DEFAULT_FORMATS: tuple[str, ...] = ("html", "branding", "links")


@dataclass(frozen=True, slots=True)
class ExtractionConfig:
    """Holds the extractor endpoint and request defaults."""

    endpoint: str
    api_key: str | None
    resilience: ResilienceConfig
    wait_time_ms: int = DEFAULT_WAIT_TIME_MS
    formats: tuple[str, ...] = DEFAULT_FORMATS


def get_extraction_config(*, resilience: ResilienceConfig | None = None) -> ExtractionConfig:
    values = require_env_vars(("STOREMIGRATE_EXTRACTOR_URL",))
    api_key = os.getenv("STOREMIGRATE_EXTRACTOR_API_KEY") or None
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
    return ExtractionConfig(
        endpoint=values["STOREMIGRATE_EXTRACTOR_URL"],
        api_key=api_key,
        wait_time_ms=optional_env_int(
            "STOREMIGRATE_EXTRACTOR_WAIT_MS", DEFAULT_WAIT_TIME_MS, minimum=0
        ),
        resilience=resilience
        or ResilienceConfig(
            name="extractor",
            timeout_seconds=EXTRACTION_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=2),
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers=headers,
        ),
    )
