"""Domain ports."""

from __future__ import annotations

from .extraction import ContentExtractor, ExtractionOptions, ExtractionResult
from .persistence import (
    CatalogImporter,
    ImportCounts,
    ImportJobRepository,
    StoredRef,
    StructureStore,
    UpsertResult,
)

__all__ = [
    "CatalogImporter",
    "ContentExtractor",
    "ExtractionOptions",
    "ExtractionResult",
    "ImportCounts",
    "ImportJobRepository",
    "StoredRef",
    "StructureStore",
    "UpsertResult",
]
