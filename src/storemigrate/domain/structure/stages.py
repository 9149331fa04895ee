"""Stage handlers for the structure import.

Every handler takes the ``processing`` stage record plus the shared context and
returns the record with its stats and item-level errors filled in. Handlers do
not set the final status; the orchestrator does.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from itertools import batched
from typing import TYPE_CHECKING

from storemigrate.domain.errors import PersistenceError
from storemigrate.domain.model import MenuLocation, StageName, StageStatus
from storemigrate.domain.structure.menus import MenuTreeBuilder
from storemigrate.domain.structure.references import ReferenceLookup
from storemigrate.domain.text import slugify

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from storemigrate.domain.model import (
        CanonicalCategory,
        CanonicalPage,
        ContentBlock,
        NavigationEntry,
    )
    from storemigrate.domain.ports.persistence import UpsertResult
    from storemigrate.domain.structure.context import StageContext
    from storemigrate.domain.structure.state import StageState

log = logging.getLogger(__name__)

MENU_NAMES: dict[MenuLocation, str] = {
    MenuLocation.HEADER: "Menu principal",
    MenuLocation.FOOTER_1: "Rodapé",
}


@dataclass(slots=True)
class _UpsertTally:
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list[str])

    def as_stats(self) -> dict[str, int]:
        return {"created": self.created, "updated": self.updated, "failed": self.failed}


async def import_branding(state: StageState, context: StageContext) -> StageState:
    extraction = await context.extraction()
    branding = extraction.branding
    if branding is None or branding.is_empty():
        log.info("No branding found for %s", context.source_url)
        return replace(state, stats={"saved": 0})
    context.cancellation.raise_if_cancelled()
    await context.store.save_branding(context.tenant_id, branding)
    return replace(state, stats={"saved": 1})


async def import_categories(state: StageState, context: StageContext) -> StageState:
    extraction = await context.extraction()
    categories = _unique_by_slug(extraction.categories, name_of=lambda item: item.name)

    async def upsert(category: CanonicalCategory) -> UpsertResult:
        return await context.store.upsert_category(context.tenant_id, category)

    tally = await _upsert_in_chunks(
        categories, upsert, context=context, describe=lambda item: item.slug
    )
    return replace(state, stats=tally.as_stats(), errors=tally.errors)


async def import_pages(state: StageState, context: StageContext) -> StageState:
    extraction = await context.extraction()
    pages = _unique_by_slug(extraction.institutional_pages, name_of=lambda item: item.title)

    async def upsert(page: CanonicalPage) -> UpsertResult:
        return await context.store.upsert_page(context.tenant_id, page)

    tally = await _upsert_in_chunks(pages, upsert, context=context, describe=lambda item: item.slug)
    return replace(state, stats=tally.as_stats(), errors=tally.errors)


async def import_menus(state: StageState, context: StageContext) -> StageState:
    """Rebuild the header and footer menus from scratch.

    Links resolve only against categories and pages whose stage completed in
    this job; a skipped stage leaves its links external.
    """

    extraction = await context.extraction()
    lookup = await build_reference_lookup(context)
    builder = MenuTreeBuilder(context.store, lookup, cancellation=context.cancellation)

    stats = {"menus": 0, "inserted": 0, "failed": 0, "skipped": 0, "unresolved": 0, "removed": 0}
    errors: list[str] = []
    sources: tuple[tuple[MenuLocation, list[NavigationEntry]], ...] = (
        (MenuLocation.HEADER, extraction.menu_items),
        (MenuLocation.FOOTER_1, extraction.footer_menu_items),
    )
    for location, entries in sources:
        if not entries:
            continue
        context.cancellation.raise_if_cancelled()
        menu_id = await context.store.upsert_menu(
            context.tenant_id, location, MENU_NAMES[location]
        )
        context.cancellation.raise_if_cancelled()
        stats["removed"] += await context.store.delete_menu_items(menu_id)
        built = await builder.build(menu_id, entries)
        stats["menus"] += 1
        for key, value in built.as_stats().items():
            stats[key] += value
        errors.extend(f"{location}: {error}" for error in built.errors)
    return replace(state, stats=stats, errors=errors)


async def import_content_blocks(state: StageState, context: StageContext) -> StageState:
    extraction = await context.extraction()
    blocks = sorted(extraction.content_blocks, key=lambda block: (block.page, block.position))

    async def upsert(block: ContentBlock) -> UpsertResult:
        return await context.store.upsert_content_block(context.tenant_id, block)

    tally = await _upsert_in_chunks(
        blocks, upsert, context=context, describe=lambda block: f"{block.page}#{block.position}"
    )
    return replace(state, stats=tally.as_stats(), errors=tally.errors)


async def build_reference_lookup(context: StageContext) -> ReferenceLookup:
    job = context.job
    categories = (
        await context.store.list_categories(context.tenant_id)
        if job.stage(StageName.CATEGORIES).status is StageStatus.COMPLETED
        else ()
    )
    pages = (
        await context.store.list_pages(context.tenant_id)
        if job.stage(StageName.PAGES).status is StageStatus.COMPLETED
        else ()
    )
    return ReferenceLookup.build(categories=categories, pages=pages)


async def _upsert_in_chunks[T](
    items: Sequence[T],
    upsert: Callable[[T], Awaitable[UpsertResult]],
    *,
    context: StageContext,
    describe: Callable[[T], str],
) -> _UpsertTally:
    tally = _UpsertTally()

    async def run_one(item: T) -> None:
        context.cancellation.raise_if_cancelled()
        try:
            result = await upsert(item)
        except PersistenceError as exc:
            tally.failed += 1
            tally.errors.append(f"{describe(item)}: {exc}")
            log.warning("Upsert of %s failed: %s", describe(item), exc)
            return
        if result.created:
            tally.created += 1
        else:
            tally.updated += 1

    for chunk in batched(items, context.chunk_size):
        context.cancellation.raise_if_cancelled()
        outcomes = await asyncio.gather(
            *(run_one(item) for item in chunk), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
    return tally


def _unique_by_slug[T: (CanonicalCategory, CanonicalPage)](
    items: Iterable[T], *, name_of: Callable[[T], str]
) -> list[T]:
    unique: dict[str, T] = {}
    for item in items:
        slug = slugify(item.slug) or slugify(name_of(item))
        if not slug:
            log.debug("Skipping %r without a usable slug", name_of(item))
            continue
        unique.setdefault(slug, replace(item, slug=slug))
    return list(unique.values())


STAGE_HANDLERS: dict[StageName, Callable[[StageState, StageContext], Awaitable[StageState]]] = {
    StageName.BRANDING: import_branding,
    StageName.CATEGORIES: import_categories,
    StageName.PAGES: import_pages,
    StageName.MENUS: import_menus,
    StageName.CONTENT_BLOCKS: import_content_blocks,
}
