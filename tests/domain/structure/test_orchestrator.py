from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from storemigrate.domain.cancellation import CancellationToken
from storemigrate.domain.errors import StageGateError, StageTransitionError
from storemigrate.domain.model import (
    Branding,
    CanonicalCategory,
    CanonicalPage,
    MenuLocation,
    NavigationEntry,
    StageName,
    StageStatus,
)
from storemigrate.domain.ports.extraction import ExtractionResult
from storemigrate.domain.structure.orchestrator import (
    INTERRUPTED_MESSAGE,
    StructureImportPipeline,
)
from storemigrate.domain.structure.state import ImportJob
from tests.support.structure import (
    TENANT,
    FakeExtractor,
    FakeStructureStore,
    InMemoryJobRepository,
    failing_extractor,
    make_context,
)

EXTRACTION = ExtractionResult(
    categories=[CanonicalCategory(name="Camisetas", slug="camisetas")],
    institutional_pages=[CanonicalPage(title="Sobre", slug="sobre")],
    menu_items=[
        NavigationEntry(label="Camisetas", url="https://x.com/collections/camisetas"),
        NavigationEntry(label="Sobre", url="https://x.com/pages/sobre"),
    ],
)


def _pipeline(
    *,
    extractor: FakeExtractor | None = None,
    store: FakeStructureStore | None = None,
    jobs: InMemoryJobRepository | None = None,
    cancellation: CancellationToken | None = None,
    on_complete: list[ImportJob] | None = None,
) -> StructureImportPipeline:
    context = make_context(
        extractor=extractor or FakeExtractor(result=EXTRACTION),
        store=store,
        cancellation=cancellation,
    )
    return StructureImportPipeline(
        context,
        jobs=jobs,
        on_complete=on_complete.append if on_complete is not None else None,
    )


def _statuses(job: ImportJob) -> list[StageStatus]:
    return [state.status for state in job.stages]


def test_run_completes_every_stage_in_order() -> None:
    store = FakeStructureStore()
    jobs = InMemoryJobRepository()
    completed: list[ImportJob] = []
    pipeline = _pipeline(store=store, jobs=jobs, on_complete=completed)

    job = asyncio.run(pipeline.run())

    assert _statuses(job) == [StageStatus.COMPLETED] * 5
    assert store.calls == [
        "category:camisetas",
        "page:sobre",
        f"menu:{MenuLocation.HEADER}",
        "menu_item:Camisetas",
        "menu_item:Sobre",
    ]
    assert [item.url for item in store.items_of(MenuLocation.HEADER)] == [
        "/categoria/camisetas",
        "/pagina/sobre",
    ]
    assert completed == [job]
    assert job.completed_at is not None
    assert jobs.saved[job.id]["completed_at"] is not None


def test_completion_callback_fires_once() -> None:
    completed: list[ImportJob] = []
    pipeline = _pipeline(on_complete=completed)

    asyncio.run(pipeline.run())
    asyncio.run(pipeline.run())

    assert len(completed) == 1


def test_completion_callback_fires_once_when_terminal_stage_is_skipped() -> None:
    completed: list[ImportJob] = []
    pipeline = _pipeline(on_complete=completed)

    job = asyncio.run(pipeline.run(skip=[StageName.CONTENT_BLOCKS]))

    assert job.stage(StageName.CONTENT_BLOCKS).status is StageStatus.SKIPPED
    assert job.completed_at is not None
    assert completed == [job]

    with pytest.raises(StageTransitionError):
        asyncio.run(pipeline.retry_stage(StageName.CONTENT_BLOCKS))
    with pytest.raises(StageTransitionError):
        asyncio.run(pipeline.skip_stage(StageName.CONTENT_BLOCKS))
    asyncio.run(pipeline.run(skip=[StageName.CONTENT_BLOCKS]))

    assert len(completed) == 1


def test_async_completion_callback_is_awaited() -> None:
    seen: list[str] = []

    async def notify(job: ImportJob) -> None:
        seen.append(str(job.id))

    context = make_context(extractor=FakeExtractor(result=EXTRACTION))
    pipeline = StructureImportPipeline(context, on_complete=notify)

    asyncio.run(pipeline.run())

    assert seen == [str(context.job.id)]


def test_stage_cannot_start_before_earlier_stages_are_done() -> None:
    pipeline = _pipeline()
    job = pipeline.job
    job.stage(StageName.BRANDING).status = StageStatus.COMPLETED
    job.stage(StageName.CATEGORIES).status = StageStatus.PROCESSING

    assert not pipeline.can_start(StageName.MENUS)
    with pytest.raises(StageGateError, match="categories"):
        asyncio.run(pipeline.start_stage(StageName.MENUS))
    assert job.stage(StageName.MENUS).status is StageStatus.PENDING


def test_completed_stage_cannot_be_started_again() -> None:
    pipeline = _pipeline()
    asyncio.run(pipeline.start_stage(StageName.BRANDING))

    with pytest.raises(StageTransitionError):
        asyncio.run(pipeline.start_stage(StageName.BRANDING))


def test_skipped_pages_leave_page_links_external() -> None:
    store = FakeStructureStore()
    pipeline = _pipeline(store=store)

    job = asyncio.run(pipeline.run(skip=[StageName.PAGES]))

    assert job.stage(StageName.PAGES).status is StageStatus.SKIPPED
    assert job.stage(StageName.MENUS).status is StageStatus.COMPLETED
    assert "page:sobre" not in store.calls
    urls = [item.url for item in store.items_of(MenuLocation.HEADER)]
    assert urls == ["/categoria/camisetas", "https://x.com/pages/sobre"]


def test_extractor_failure_marks_first_stage_as_error_and_stops() -> None:
    store = FakeStructureStore()
    pipeline = _pipeline(extractor=failing_extractor("service down"), store=store)

    job = asyncio.run(pipeline.run())

    assert _statuses(job) == [StageStatus.ERROR] + [StageStatus.PENDING] * 4
    assert job.stage(StageName.BRANDING).errors == ["service down"]
    assert store.calls == []
    assert job.completed_at is None


def test_retry_resets_errored_stage_and_run_continues() -> None:
    extractor = failing_extractor()
    pipeline = _pipeline(extractor=extractor)
    asyncio.run(pipeline.run())

    extractor.error = None
    extractor.result = EXTRACTION
    state = asyncio.run(pipeline.retry_stage(StageName.BRANDING))
    assert state.status is StageStatus.PENDING
    assert state.errors == []

    job = asyncio.run(pipeline.run())

    assert _statuses(job) == [StageStatus.COMPLETED] * 5


def test_only_errored_stages_can_be_retried() -> None:
    pipeline = _pipeline()

    with pytest.raises(StageTransitionError):
        asyncio.run(pipeline.retry_stage(StageName.BRANDING))


def test_errored_stage_can_be_skipped_to_unblock_later_stages() -> None:
    store = FakeStructureStore()
    extractor = failing_extractor()
    pipeline = _pipeline(extractor=extractor, store=store)
    asyncio.run(pipeline.run())

    asyncio.run(pipeline.skip_stage(StageName.BRANDING))
    extractor.error = None
    extractor.result = EXTRACTION
    job = asyncio.run(pipeline.run())

    assert job.stage(StageName.BRANDING).status is StageStatus.SKIPPED
    assert job.stage(StageName.CONTENT_BLOCKS).status is StageStatus.COMPLETED
    assert job.completed_at is not None


def test_cancellation_during_stage_records_error_without_persisting() -> None:
    store = FakeStructureStore()
    token = CancellationToken()
    extractor = FakeExtractor(
        result=replace(EXTRACTION, branding=Branding(store_name="Loja")),
        before_return=lambda: token.cancel("user aborted"),
    )
    pipeline = _pipeline(extractor=extractor, store=store, cancellation=token)

    job = asyncio.run(pipeline.run())

    branding = job.stage(StageName.BRANDING)
    assert branding.status is StageStatus.ERROR
    assert branding.errors == ["cancelled: user aborted"]
    assert store.calls == []
    assert job.stage(StageName.CATEGORIES).status is StageStatus.PENDING


def test_run_stops_before_next_stage_once_cancelled() -> None:
    token = CancellationToken()
    token.cancel()
    store = FakeStructureStore()
    pipeline = _pipeline(store=store, cancellation=token)

    job = asyncio.run(pipeline.run())

    assert _statuses(job) == [StageStatus.PENDING] * 5
    assert store.calls == []


def test_every_transition_is_persisted() -> None:
    jobs = InMemoryJobRepository()
    pipeline = _pipeline(jobs=jobs)

    asyncio.run(pipeline.start_stage(StageName.BRANDING))

    assert jobs.save_count == 2
    restored = asyncio.run(jobs.get(pipeline.job.id))
    assert restored is not None
    assert restored.stage(StageName.BRANDING).status is StageStatus.COMPLETED


def _restored_with_branding_processing(jobs: InMemoryJobRepository) -> StructureImportPipeline:
    job = ImportJob(tenant_id=TENANT, source_url="https://loja.example.com")
    job.stage(StageName.BRANDING).status = StageStatus.PROCESSING
    asyncio.run(jobs.save(job))
    restored = asyncio.run(jobs.get(job.id))
    assert restored is not None
    context = make_context(extractor=FakeExtractor(result=EXTRACTION), job=restored)
    return StructureImportPipeline(context, jobs=jobs)


def test_run_turns_abandoned_processing_stage_into_error() -> None:
    jobs = InMemoryJobRepository()
    pipeline = _restored_with_branding_processing(jobs)

    job = asyncio.run(pipeline.run())

    branding = job.stage(StageName.BRANDING)
    assert branding.status is StageStatus.ERROR
    assert branding.errors == [INTERRUPTED_MESSAGE]
    stored = asyncio.run(jobs.get(job.id))
    assert stored is not None
    assert stored.stage(StageName.BRANDING).status is StageStatus.ERROR


def test_abandoned_processing_stage_can_be_retried() -> None:
    pipeline = _restored_with_branding_processing(InMemoryJobRepository())

    state = asyncio.run(pipeline.retry_stage(StageName.BRANDING))
    assert state.status is StageStatus.PENDING

    job = asyncio.run(pipeline.run())

    assert _statuses(job) == [StageStatus.COMPLETED] * 5


def test_abandoned_processing_stage_can_be_skipped() -> None:
    pipeline = _restored_with_branding_processing(InMemoryJobRepository())

    state = asyncio.run(pipeline.skip_stage(StageName.BRANDING))

    assert state.status is StageStatus.SKIPPED
    job = asyncio.run(pipeline.run())
    assert job.stage(StageName.CONTENT_BLOCKS).status is StageStatus.COMPLETED
