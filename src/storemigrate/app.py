"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from storemigrate.adapters.extraction import HttpContentExtractor
from storemigrate.adapters.sqlalchemy import (
    SqlAlchemyCatalogImporter,
    SqlAlchemyImportJobRepository,
    SqlAlchemyStructureStore,
    is_started,
    session_factory,
    startup,
)
from storemigrate.config import get_pipeline_config
from storemigrate.domain.cancellation import CancellationToken
from storemigrate.domain.ingest import detect_platform, import_file
from storemigrate.domain.model import SourcePlatform
from storemigrate.domain.structure import ImportJob, StageContext, StructureImportPipeline

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from storemigrate.domain.ingest import FileImportReport, PlatformDetection
    from storemigrate.domain.model import EntityKind, StageName
    from storemigrate.domain.ports import (
        CatalogImporter,
        ContentExtractor,
        ExtractionResult,
        ImportJobRepository,
        StructureStore,
    )
    from storemigrate.domain.structure.orchestrator import CompletionCallback


log = getLogger(__name__)


@dataclass(slots=True)
class StoreAnalysis:
    detection: PlatformDetection
    extraction: ExtractionResult


@dataclass(slots=True)
class Repositories:
    store: StructureStore
    importer: CatalogImporter
    jobs: ImportJobRepository


class JobNotFoundError(LookupError):
    """Raised when a job id (or a tenant's latest job) does not exist."""


async def open_repositories() -> Repositories:
    """Start the SQLAlchemy adapter if needed and build repositories sharing one write lock."""

    if not is_started():
        await startup()
    factory = session_factory()
    lock = asyncio.Lock()
    return Repositories(
        store=SqlAlchemyStructureStore(factory, lock=lock),
        importer=SqlAlchemyCatalogImporter(factory, lock=lock),
        jobs=SqlAlchemyImportJobRepository(factory, lock=lock),
    )


async def analyze_store(url: str, *, extractor: ContentExtractor | None = None) -> StoreAnalysis:
    """Scrape ``url`` once and classify its platform from the returned markup."""

    effective_extractor = extractor or HttpContentExtractor()
    extraction = await effective_extractor(url)
    detection = detect_platform(extraction.html)
    log.info(
        "Detected %s (%s confidence) at %s", detection.platform, detection.confidence, url
    )
    return StoreAnalysis(detection=detection, extraction=extraction)


async def import_catalog_file(
    data: bytes,
    *,
    tenant_id: UUID,
    kind: EntityKind,
    platform: SourcePlatform = SourcePlatform.UNKNOWN,
    filename: str | None = None,
    importer: CatalogImporter | None = None,
    chunk_size: int | None = None,
    cancellation: CancellationToken | None = None,
) -> FileImportReport:
    """Import one uploaded product, customer or order file into ``tenant_id``."""

    effective_importer = importer or (await open_repositories()).importer
    effective_chunk_size = chunk_size or get_pipeline_config().import_chunk_size
    log.info(
        "Starting %s import: file=%s, platform=%s, chunk_size=%s",
        kind,
        filename,
        platform,
        effective_chunk_size,
    )
    report = await import_file(
        data,
        tenant_id=tenant_id,
        kind=kind,
        importer=effective_importer,
        platform=platform,
        filename=filename,
        chunk_size=effective_chunk_size,
        cancellation=cancellation,
    )
    log.info(
        "Finished %s import: imported=%s, failed=%s, dropped=%s, unmapped=%s",
        kind,
        report.imported,
        report.failed,
        report.dropped,
        report.unmapped,
    )
    return report


async def run_structure_import(
    tenant_id: UUID,
    source_url: str,
    *,
    extractor: ContentExtractor | None = None,
    repositories: Repositories | None = None,
    skip: Collection[StageName] = (),
    on_complete: CompletionCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> ImportJob:
    """Create a job for ``source_url`` and run its stages until done or the first error.

    The job is saved before the site is scraped, so a failing extractor leaves a
    job whose first running stage is marked ``error``. The platform is detected
    from the first successful scrape.
    """

    repos = repositories or await open_repositories()
    job = ImportJob(tenant_id=tenant_id, source_url=source_url)
    await repos.jobs.save(job)
    pipeline = _build_pipeline(
        job,
        extractor=extractor or HttpContentExtractor(),
        repositories=repos,
        on_complete=on_complete,
        cancellation=cancellation,
    )
    await pipeline.run(skip=skip)
    log.info("Structure import %s for %s: %s", job.id, source_url, _summary(job))
    return job


async def retry_stage(
    job_id: UUID,
    stage: StageName,
    *,
    extractor: ContentExtractor | None = None,
    repositories: Repositories | None = None,
    resume: bool = True,
    on_complete: CompletionCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> ImportJob:
    """Reset an errored stage to pending and, with ``resume``, continue the job.

    A stage left ``processing`` by an interrupted run counts as errored.
    """

    repos = repositories or await open_repositories()
    job = await _load_job(repos.jobs, job_id)
    pipeline = _build_pipeline(
        job,
        extractor=extractor or HttpContentExtractor(),
        repositories=repos,
        on_complete=on_complete,
        cancellation=cancellation,
    )
    await pipeline.retry_stage(stage)
    if resume:
        await pipeline.run()
    return job


async def skip_stage(
    job_id: UUID,
    stage: StageName,
    *,
    extractor: ContentExtractor | None = None,
    repositories: Repositories | None = None,
    resume: bool = False,
    on_complete: CompletionCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> ImportJob:
    """Mark a pending or errored stage as skipped so later stages may run."""

    repos = repositories or await open_repositories()
    job = await _load_job(repos.jobs, job_id)
    pipeline = _build_pipeline(
        job,
        extractor=extractor or HttpContentExtractor(),
        repositories=repos,
        on_complete=on_complete,
        cancellation=cancellation,
    )
    await pipeline.skip_stage(stage)
    if resume:
        await pipeline.run()
    return job


async def job_status(
    *,
    job_id: UUID | None = None,
    tenant_id: UUID | None = None,
    repositories: Repositories | None = None,
) -> ImportJob:
    """Return a job by id, or the latest job of a tenant."""

    repos = repositories or await open_repositories()
    if job_id is not None:
        return await _load_job(repos.jobs, job_id)
    if tenant_id is None:
        raise ValueError("Pass job_id or tenant_id")
    job = await repos.jobs.latest_for_tenant(tenant_id)
    if job is None:
        raise JobNotFoundError(f"No import job for tenant {tenant_id}")
    return job


def _build_pipeline(
    job: ImportJob,
    *,
    extractor: ContentExtractor,
    repositories: Repositories,
    on_complete: CompletionCallback | None = None,
    cancellation: CancellationToken | None = None,
) -> StructureImportPipeline:
    context = StageContext(
        job=job,
        store=repositories.store,
        extractor=extractor,
        cancellation=cancellation or CancellationToken(),
        chunk_size=get_pipeline_config().structure_chunk_size,
    )
    return StructureImportPipeline(context, jobs=repositories.jobs, on_complete=on_complete)


async def _load_job(jobs: ImportJobRepository, job_id: UUID) -> ImportJob:
    job = await jobs.get(job_id)
    if job is None:
        raise JobNotFoundError(f"Import job {job_id} not found")
    return job


def _summary(job: ImportJob) -> str:
    return ", ".join(f"{state.name}={state.status}" for state in job.stages)
