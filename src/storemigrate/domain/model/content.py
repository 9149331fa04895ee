"""Site structure entities: branding, categories, pages, menus and content blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storemigrate.domain.model.enums import ItemType

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(slots=True, kw_only=True)
class Branding:
    store_name: str | None = None
    logo_url: str | None = None
    favicon_url: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.store_name,
                self.logo_url,
                self.favicon_url,
                self.primary_color,
                self.secondary_color,
            )
        )


@dataclass(slots=True, kw_only=True)
class CanonicalCategory:
    name: str
    slug: str
    source_url: str | None = None
    description: str | None = None


@dataclass(slots=True, kw_only=True)
class CanonicalPage:
    title: str
    slug: str
    source_url: str | None = None
    content: str | None = None


@dataclass(slots=True, kw_only=True)
class NavigationEntry:
    """A scraped navigation link with its nested children, before resolution."""

    label: str
    url: str
    children: list[NavigationEntry] = field(default_factory=list["NavigationEntry"])


@dataclass(slots=True, kw_only=True)
class MenuItem:
    """A resolved navigation link as persisted under a menu."""

    menu_id: UUID
    label: str
    url: str
    item_type: ItemType
    sort_order: int
    ref_id: UUID | None = None
    parent_id: UUID | None = None


@dataclass(slots=True, kw_only=True)
class ContentBlock:
    block_type: str
    position: int
    page: str = "home"
    props: dict[str, object] = field(default_factory=dict[str, object])
    source_url: str | None = None
