"""File import service: decode, parse, consolidate, normalize and persist in chunks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import batched
from typing import TYPE_CHECKING

from storemigrate.domain.errors import PersistenceError
from storemigrate.domain.ingest.consolidation import (
    ConsolidationResult,
    consolidate_order_rows,
    consolidate_product_rows,
)
from storemigrate.domain.ingest.normalization import normalize_records
from storemigrate.domain.ingest.uploads import load_upload
from storemigrate.domain.model import EntityKind, SourcePlatform, SourceShape
from storemigrate.domain.ports.persistence import ImportCounts

if TYPE_CHECKING:
    from uuid import UUID

    from storemigrate.domain.cancellation import CancellationToken
    from storemigrate.domain.ingest.tabular import RawRow
    from storemigrate.domain.ports.persistence import CatalogImporter

log = logging.getLogger(__name__)

DEFAULT_IMPORT_CHUNK_SIZE = 50


@dataclass(slots=True)
class FileImportReport:
    """Counts and readable problems for one uploaded file."""

    kind: EntityKind
    platform: SourcePlatform
    shape: SourceShape
    rows: int = 0
    records: int = 0
    imported: int = 0
    failed: int = 0
    dropped: int = 0
    unmapped: int = 0
    errors: list[str] = field(default_factory=list[str])

    def as_stats(self) -> dict[str, int]:
        return {
            "rows": self.rows,
            "records": self.records,
            "imported": self.imported,
            "failed": self.failed,
            "dropped": self.dropped,
            "unmapped": self.unmapped,
        }


async def import_file(
    data: bytes,
    *,
    tenant_id: UUID,
    kind: EntityKind,
    importer: CatalogImporter,
    platform: SourcePlatform = SourcePlatform.UNKNOWN,
    filename: str | None = None,
    chunk_size: int = DEFAULT_IMPORT_CHUNK_SIZE,
    cancellation: CancellationToken | None = None,
) -> FileImportReport:
    """Import one uploaded file; ``ParseError`` aborts only this file.

    Entities are sent to ``importer`` in sequential chunks of ``chunk_size``;
    each chunk is awaited before its counts are folded into the report. A chunk
    rejected with ``PersistenceError`` is counted as failed and the next chunk
    still runs.
    """

    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    upload = load_upload(data, filename=filename)
    report = FileImportReport(kind=kind, platform=platform, shape=upload.shape)
    report.rows = len(upload.records)

    records = upload.records
    consolidated = _consolidate(upload.shape, kind, upload.records)
    if consolidated is not None:
        records = consolidated.records
        report.dropped = len(consolidated.warnings)
        report.errors.extend(str(warning) for warning in consolidated.warnings)

    normalized = normalize_records(platform, kind, records)
    report.records = len(normalized.entities)
    report.unmapped = len(normalized.errors)
    report.errors.extend(str(error) for error in normalized.errors)

    totals = ImportCounts()
    for chunk in batched(normalized.entities, chunk_size):
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        try:
            counts = await importer.import_batch(tenant_id, platform, kind, list(chunk))
        except PersistenceError as exc:
            log.warning("Import chunk of %d %s records failed: %s", len(chunk), kind, exc)
            counts = ImportCounts(failed=len(chunk), errors=[str(exc)])
        totals = totals.merge(counts)

    report.imported = totals.imported
    report.failed = totals.failed
    report.errors.extend(totals.errors)
    log.info(
        "Imported %s file %s: imported=%d failed=%d dropped=%d unmapped=%d",
        kind,
        filename or "<upload>",
        report.imported,
        report.failed,
        report.dropped,
        report.unmapped,
    )
    return report


def _consolidate(
    shape: SourceShape,
    kind: EntityKind,
    records: list[dict[str, object]],
) -> ConsolidationResult | None:
    if shape is SourceShape.FLATTENED_PRODUCTS and kind is EntityKind.PRODUCT:
        return consolidate_product_rows(_as_rows(records))
    if shape is SourceShape.FLATTENED_ORDERS and kind is EntityKind.ORDER:
        return consolidate_order_rows(_as_rows(records))
    if shape in (SourceShape.FLATTENED_PRODUCTS, SourceShape.FLATTENED_ORDERS):
        log.warning("Upload looks like %s but was imported as %s; rows kept as-is", shape, kind)
    return None


def _as_rows(records: list[dict[str, object]]) -> list[RawRow]:
    return [{key: str(value) for key, value in record.items()} for record in records]
