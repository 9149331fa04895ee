"""Public interface for the content-extraction adapter."""

from __future__ import annotations

from .client import ExtractionServiceError, HttpContentExtractor
from .schema import ExtractionPayload, ExtractionResponse
from .translator import parse_extraction

__all__ = [
    "ExtractionPayload",
    "ExtractionResponse",
    "ExtractionServiceError",
    "HttpContentExtractor",
    "parse_extraction",
]
