"""Source platform and upload shape detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from storemigrate.domain.model import Confidence, SourcePlatform, SourceShape

if TYPE_CHECKING:
    from collections.abc import Iterable

log = logging.getLogger(__name__)

# Evaluated in order; the first platform with any marker present wins.
PLATFORM_MARKERS: Final[tuple[tuple[SourcePlatform, tuple[str, ...]], ...]] = (
    (SourcePlatform.SHOPIFY, ("cdn.shopify.com", "shopify")),
    (SourcePlatform.WOOCOMMERCE, ("woocommerce", "wp-content/plugins/woo")),
    (SourcePlatform.NUVEMSHOP, ("nuvemshop", "tiendanube")),
    (SourcePlatform.VTEX, ("vtex",)),
    (SourcePlatform.TRAY, ("tray.com", "traycorp", "tray")),
)


@dataclass(frozen=True, slots=True)
class PlatformDetection:
    platform: SourcePlatform
    confidence: Confidence

    @classmethod
    def unknown(cls) -> PlatformDetection:
        return cls(SourcePlatform.UNKNOWN, Confidence.LOW)


def detect_platform(markup: str) -> PlatformDetection:
    """Classify storefront markup by case-insensitive marker lookup."""

    haystack = markup.lower()
    for platform, markers in PLATFORM_MARKERS:
        if any(marker in haystack for marker in markers):
            log.debug("Detected platform %s", platform)
            return PlatformDetection(platform, Confidence.HIGH)
    return PlatformDetection.unknown()


def detect_source_shape(headers: Iterable[str]) -> SourceShape:
    """Decide from tabular headers whether rows must be consolidated before mapping.

    A Handle column together with a Title column means a flattened product export
    (one row per variant or image). A Name column together with line-item and
    financial status columns means a flattened order export (one row per line item).
    """

    lowered = {header.strip().lower() for header in headers}
    if "handle" in lowered and "title" in lowered:
        return SourceShape.FLATTENED_PRODUCTS
    has_line_item = any("lineitem" in name and "name" in name for name in lowered)
    has_financial = any("financial" in name and "status" in name for name in lowered)
    if "name" in lowered and has_line_item and has_financial:
        return SourceShape.FLATTENED_ORDERS
    return SourceShape.TABULAR
