"""Translate extraction payloads into domain entities."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from storemigrate.domain.model import (
    Branding,
    CanonicalCategory,
    CanonicalPage,
    ContentBlock,
    NavigationEntry,
)
from storemigrate.domain.ports.extraction import ExtractionResult
from storemigrate.domain.text import collapse_whitespace, slugify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import (
        BrandingPayload,
        CategoryPayload,
        ContentBlockPayload,
        ExtractionPayload,
        NavigationPayload,
        PagePayload,
    )

log = getLogger(__name__)


def parse_extraction(payload: ExtractionPayload) -> ExtractionResult:
    return ExtractionResult(
        html=payload.html,
        branding=_branding(payload.branding),
        menu_items=_navigation(payload.menu_items),
        footer_menu_items=_navigation(payload.footer_menu_items),
        categories=[
            category for item in payload.categories if (category := _category(item)) is not None
        ],
        institutional_pages=[
            page for item in payload.institutional_pages if (page := _page(item)) is not None
        ],
        content_blocks=_content_blocks(payload.content_blocks),
    )


def _branding(payload: BrandingPayload | None) -> Branding | None:
    if payload is None:
        return None
    branding = Branding(
        store_name=payload.store_name,
        logo_url=payload.logo_url,
        favicon_url=payload.favicon_url,
        primary_color=payload.primary_color,
        secondary_color=payload.secondary_color,
    )
    return None if branding.is_empty() else branding


def _navigation(items: Iterable[NavigationPayload]) -> list[NavigationEntry]:
    entries: list[NavigationEntry] = []
    for item in items:
        label = collapse_whitespace(item.label)
        if not label:
            log.debug("Dropping navigation entry without label (%s)", item.url)
            continue
        entries.append(
            NavigationEntry(label=label, url=item.url.strip(), children=_navigation(item.children))
        )
    return entries


def _category(payload: CategoryPayload) -> CanonicalCategory | None:
    name = collapse_whitespace(payload.name)
    slug = slugify(payload.slug) or slugify(name)
    if not name or not slug:
        return None
    return CanonicalCategory(
        name=name, slug=slug, source_url=payload.url, description=payload.description
    )


def _page(payload: PagePayload) -> CanonicalPage | None:
    title = collapse_whitespace(payload.title)
    slug = slugify(payload.slug) or slugify(title)
    if not title or not slug:
        return None
    return CanonicalPage(title=title, slug=slug, source_url=payload.url, content=payload.content)


def _content_blocks(items: Iterable[ContentBlockPayload]) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    next_position: dict[str, int] = {}
    for item in items:
        position = item.position if item.position is not None else next_position.get(item.page, 0)
        next_position[item.page] = max(next_position.get(item.page, 0), position + 1)
        blocks.append(
            ContentBlock(
                block_type=item.block_type,
                position=position,
                page=item.page,
                props=dict(item.props),
                source_url=item.source_url,
            )
        )
    return blocks
