"""Upload ingestion: detection, parsing, consolidation and normalization."""

from __future__ import annotations

from .consolidation import ConsolidationResult, consolidate_order_rows, consolidate_product_rows
from .detection import PlatformDetection, detect_platform, detect_source_shape
from .normalization import NormalizationResult, normalize_records
from .service import FileImportReport, import_file
from .tabular import Table, parse_table
from .uploads import ParsedUpload, decode_upload, load_upload

__all__ = [
    "ConsolidationResult",
    "FileImportReport",
    "NormalizationResult",
    "ParsedUpload",
    "PlatformDetection",
    "Table",
    "consolidate_order_rows",
    "consolidate_product_rows",
    "decode_upload",
    "detect_platform",
    "detect_source_shape",
    "import_file",
    "load_upload",
    "normalize_records",
    "parse_table",
]
