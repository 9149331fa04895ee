"""Port for the external content-extraction capability."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from storemigrate.domain.model import (
    Branding,
    CanonicalCategory,
    CanonicalPage,
    ContentBlock,
    NavigationEntry,
)

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True, slots=True)
class ExtractionOptions:
    formats: Sequence[str] = ("html", "branding", "links")
    wait_time_ms: int = 3000


@dataclass(slots=True)
class ExtractionResult:
    """Structured view of a scraped storefront."""

    html: str = ""
    branding: Branding | None = None
    menu_items: list[NavigationEntry] = field(default_factory=list[NavigationEntry])
    footer_menu_items: list[NavigationEntry] = field(default_factory=list[NavigationEntry])
    categories: list[CanonicalCategory] = field(default_factory=list[CanonicalCategory])
    institutional_pages: list[CanonicalPage] = field(default_factory=list[CanonicalPage])
    content_blocks: list[ContentBlock] = field(default_factory=list[ContentBlock])


@runtime_checkable
class ContentExtractor(Protocol):
    """Callable port: scrape ``url`` and return its structure."""

    async def __call__(
        self, url: str, *, options: ExtractionOptions | None = None
    ) -> ExtractionResult: ...


__all__ = ["ContentExtractor", "ExtractionOptions", "ExtractionResult"]
