from __future__ import annotations

import asyncio

from storemigrate.domain.model import (
    Branding,
    CanonicalCategory,
    CanonicalPage,
    ContentBlock,
    MenuLocation,
    NavigationEntry,
    StageName,
    StageStatus,
)
from storemigrate.domain.ports.extraction import ExtractionResult
from storemigrate.domain.structure.stages import (
    import_branding,
    import_categories,
    import_content_blocks,
    import_menus,
    import_pages,
)
from tests.support.structure import TENANT, FakeExtractor, FakeStructureStore, make_context

EXTRACTION = ExtractionResult(
    branding=Branding(store_name="Loja Exemplo", primary_color="#ff0000"),
    categories=[
        CanonicalCategory(name="Camisetas", slug="camisetas"),
        CanonicalCategory(name="Calças", slug=""),
        CanonicalCategory(name="Camisetas (duplicada)", slug="Camisetas"),
    ],
    institutional_pages=[CanonicalPage(title="Sobre nós", slug="sobre")],
    menu_items=[
        NavigationEntry(
            label="Roupas",
            url="#",
            children=[
                NavigationEntry(label="Camisetas", url="https://x.com/collections/camisetas"),
                NavigationEntry(label="Calças", url="https://x.com/collections/calcas"),
            ],
        ),
        NavigationEntry(label="Sobre", url="https://x.com/pages/sobre"),
    ],
    footer_menu_items=[NavigationEntry(label="Instagram", url="https://instagram.com/loja")],
    content_blocks=[
        ContentBlock(block_type="banner", position=1),
        ContentBlock(block_type="hero", position=0),
    ],
)


def test_branding_is_saved_once() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)

    state = asyncio.run(import_branding(context.job.stage(StageName.BRANDING), context))

    assert state.stats == {"saved": 1}
    assert store.branding[TENANT].store_name == "Loja Exemplo"


def test_empty_branding_is_not_persisted() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=ExtractionResult(branding=Branding()), store=store)

    state = asyncio.run(import_branding(context.job.stage(StageName.BRANDING), context))

    assert state.stats == {"saved": 0}
    assert store.calls == []


def test_categories_are_deduplicated_by_slug() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)

    state = asyncio.run(import_categories(context.job.stage(StageName.CATEGORIES), context))

    assert store.calls == ["category:camisetas", "category:calcas"]
    assert state.stats == {"created": 2, "updated": 0, "failed": 0}


def test_rerunning_categories_updates_instead_of_duplicating() -> None:
    store = FakeStructureStore()
    first = make_context(extraction=EXTRACTION, store=store)
    asyncio.run(import_categories(first.job.stage(StageName.CATEGORIES), first))
    second = make_context(extraction=EXTRACTION, store=store)

    state = asyncio.run(import_categories(second.job.stage(StageName.CATEGORIES), second))

    assert len(store.categories) == 2
    assert state.stats == {"created": 0, "updated": 2, "failed": 0}


def test_failed_category_is_reported_and_others_continue() -> None:
    store = FakeStructureStore(fail_category_slugs={"camisetas"})
    context = make_context(extraction=EXTRACTION, store=store)

    state = asyncio.run(import_categories(context.job.stage(StageName.CATEGORIES), context))

    assert state.stats == {"created": 1, "updated": 0, "failed": 1}
    assert state.errors[0].startswith("camisetas:")


def test_pages_are_upserted() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)

    state = asyncio.run(import_pages(context.job.stage(StageName.PAGES), context))

    assert store.calls == ["page:sobre"]
    assert state.stats["created"] == 1


def test_menus_resolve_against_completed_stages_only() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)
    job = context.job
    asyncio.run(import_categories(job.stage(StageName.CATEGORIES), context))
    asyncio.run(import_pages(job.stage(StageName.PAGES), context))
    job.stage(StageName.BRANDING).status = StageStatus.COMPLETED
    job.stage(StageName.CATEGORIES).status = StageStatus.COMPLETED
    job.stage(StageName.PAGES).status = StageStatus.SKIPPED

    state = asyncio.run(import_menus(job.stage(StageName.MENUS), context))

    header = {item.label: item for item in store.items_of(MenuLocation.HEADER)}
    assert header["Camisetas"].url == "/categoria/camisetas"
    assert header["Calças"].url == "/categoria/calcas"
    assert header["Sobre"].url == "https://x.com/pages/sobre"
    assert [item.label for item in store.items_of(MenuLocation.FOOTER_1)] == ["Instagram"]
    assert state.stats["menus"] == 2
    assert state.stats["inserted"] == 5
    assert state.stats["unresolved"] == 3


def test_menus_are_rebuilt_from_scratch() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)

    asyncio.run(import_menus(context.job.stage(StageName.MENUS), context))
    state = asyncio.run(import_menus(context.job.stage(StageName.MENUS), context))

    assert len(store.menus) == 2
    assert len(store.menu_items) == 5
    assert state.stats["removed"] == 5


def test_content_blocks_are_upserted_by_page_and_position() -> None:
    store = FakeStructureStore()
    context = make_context(extraction=EXTRACTION, store=store)

    asyncio.run(import_content_blocks(context.job.stage(StageName.CONTENT_BLOCKS), context))
    state = asyncio.run(
        import_content_blocks(context.job.stage(StageName.CONTENT_BLOCKS), context)
    )

    assert store.calls[:2] == ["block:home#0", "block:home#1"]
    assert len(store.content_blocks) == 2
    assert state.stats == {"created": 0, "updated": 2, "failed": 0}


def test_extraction_is_fetched_once_per_job() -> None:
    extractor = FakeExtractor(result=EXTRACTION)
    context = make_context(extractor=extractor)

    asyncio.run(import_branding(context.job.stage(StageName.BRANDING), context))
    asyncio.run(import_categories(context.job.stage(StageName.CATEGORIES), context))

    assert extractor.calls == ["https://loja.example.com"]
