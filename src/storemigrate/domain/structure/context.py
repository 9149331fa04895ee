"""Shared, per-job context handed to every stage handler."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storemigrate.domain.cancellation import CancellationToken
from storemigrate.domain.errors import NetworkError
from storemigrate.domain.ingest.detection import detect_platform
from storemigrate.domain.model import SourcePlatform

if TYPE_CHECKING:
    from uuid import UUID

    from storemigrate.domain.ports.extraction import (
        ContentExtractor,
        ExtractionOptions,
        ExtractionResult,
    )
    from storemigrate.domain.ports.persistence import StructureStore
    from storemigrate.domain.structure.state import ImportJob

log = logging.getLogger(__name__)

DEFAULT_STRUCTURE_CHUNK_SIZE = 50


@dataclass(slots=True, kw_only=True)
class StageContext:
    job: ImportJob
    store: StructureStore
    extractor: ContentExtractor
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    extraction_options: ExtractionOptions | None = None
    chunk_size: int = DEFAULT_STRUCTURE_CHUNK_SIZE
    _extraction: ExtractionResult | None = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def tenant_id(self) -> UUID:
        return self.job.tenant_id

    @property
    def source_url(self) -> str:
        return self.job.source_url

    async def extraction(self) -> ExtractionResult:
        """Scrape the source store once per job; later stages reuse the result.

        The first successful scrape also classifies the platform of a job that
        does not know it yet.
        """

        async with self._lock:
            if self._extraction is None:
                self.cancellation.raise_if_cancelled()
                log.info("Extracting structure from %s", self.source_url)
                try:
                    self._extraction = await self.extractor(
                        self.source_url, options=self.extraction_options
                    )
                except NetworkError:
                    raise
                except Exception as exc:
                    raise NetworkError(f"Content extraction failed: {exc}") from exc
                self._detect_platform(self._extraction.html)
            return self._extraction

    def _detect_platform(self, markup: str) -> None:
        if self.job.platform is not SourcePlatform.UNKNOWN:
            return
        detection = detect_platform(markup)
        self.job.platform = detection.platform
        self.job.confidence = detection.confidence
        log.info(
            "Detected %s (%s confidence) at %s",
            detection.platform,
            detection.confidence,
            self.source_url,
        )
