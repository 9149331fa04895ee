"""HTTP client for the content-extraction service."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from storemigrate.adapters.http_resilience import ResilientClient
from storemigrate.config.extraction import ExtractionConfig, get_extraction_config
from storemigrate.domain.errors import NetworkError
from storemigrate.domain.ports.extraction import ContentExtractor, ExtractionOptions

from .schema import ExtractionResponse
from .translator import parse_extraction

if TYPE_CHECKING:
    from collections.abc import Callable

    from storemigrate.config.http_resilience import ResilienceConfig
    from storemigrate.domain.ports.extraction import ExtractionResult

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class ExtractionServiceError(NetworkError):
    """Raised when the extraction service answers but reports a failure."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HttpContentExtractor:
    config: ExtractionConfig = field(default_factory=get_extraction_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def __call__(
        self, url: str, *, options: ExtractionOptions | None = None
    ) -> ExtractionResult:
        options = options or ExtractionOptions(
            formats=self.config.formats, wait_time_ms=self.config.wait_time_ms
        )
        body = {"url": url, "formats": list(options.formats), "waitFor": options.wait_time_ms}
        async with self.client_factory(self.config.resilience) as client:
            try:
                response = await client.post(self.config.endpoint, json=body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                log.error("Extraction of %s failed with HTTP %s", url, exc.response.status_code)
                raise ExtractionServiceError(
                    f"Extraction service returned HTTP {exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise NetworkError(f"Extraction request for {url} failed: {exc}") from exc

        try:
            envelope = ExtractionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ExtractionServiceError(f"Unexpected extraction payload for {url}") from exc

        if not envelope.success or envelope.data is None:
            message = envelope.error or "extraction reported no data"
            log.error("Extraction of %s failed: %s", url, message)
            raise ExtractionServiceError(message)

        result = parse_extraction(envelope.data)
        log.info(
            f"Extracted {len(result.categories)} categories, "
            f"{len(result.institutional_pages)} pages and "
            f"{len(result.menu_items)} menu entries from {url}"
        )
        return result


if TYPE_CHECKING:
    _extractor_check: ContentExtractor = HttpContentExtractor()
