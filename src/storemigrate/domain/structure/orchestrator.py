"""Dependency-gated orchestrator for the structure import stages."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storemigrate.domain.errors import PipelineCancelled, StageGateError, StageTransitionError
from storemigrate.domain.model import StageName, StageStatus
from storemigrate.domain.structure.stages import STAGE_HANDLERS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Mapping

    from storemigrate.domain.ports.persistence import ImportJobRepository
    from storemigrate.domain.structure.context import StageContext
    from storemigrate.domain.structure.state import ImportJob, StageState

type StageHandler = Callable[[StageState, StageContext], Awaitable[StageState]]
type CompletionCallback = Callable[[ImportJob], Awaitable[None] | None]

log = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "interrupted before finishing; retry or skip the stage"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class StructureImportPipeline:
    """Run the fixed stage sequence for one job.

    Transitions are ``pending -> processing -> completed | skipped | error`` and
    ``error -> pending`` on retry. A stage may start (or be skipped) only when
    every earlier stage is completed or skipped. Handler failures are recorded
    on the stage and never advance the pipeline past it. A stage found in
    ``processing`` that this pipeline is not running was abandoned by an
    interrupted process; it is turned into ``error`` so it can be retried or
    skipped.
    """

    context: StageContext
    handlers: Mapping[StageName, StageHandler] = field(default_factory=lambda: STAGE_HANDLERS)
    jobs: ImportJobRepository | None = None
    on_complete: CompletionCallback | None = None
    _active: StageName | None = field(default=None, init=False)

    @property
    def job(self) -> ImportJob:
        return self.context.job

    def can_start(self, name: StageName) -> bool:
        return self.job.stage(name).status is StageStatus.PENDING and all(
            state.status.is_done for state in self.job.earlier_stages(name)
        )

    async def start_stage(self, name: StageName) -> StageState:
        """Run one stage; returns its final record (``completed`` or ``error``)."""

        self._check_gate(name)
        state = self.job.stage(name)
        if state.status is not StageStatus.PENDING:
            raise StageTransitionError(f"cannot start '{name}' from status {state.status}")

        state.status = StageStatus.PROCESSING
        state.started_at = _utcnow()
        state.finished_at = None
        state.errors = []
        await self._save()
        log.info("Stage %s started for job %s", name, self.job.id)

        handler = self.handlers[name]
        self._active = name
        try:
            self.context.cancellation.raise_if_cancelled()
            result = await handler(state, self.context)
        except PipelineCancelled as exc:
            return await self._fail(state, f"cancelled: {exc}")
        except asyncio.CancelledError:
            await self._fail(state, "cancelled")
            raise
        except Exception as exc:  # noqa: BLE001
            log.exception("Stage %s failed", name)
            return await self._fail(state, str(exc) or type(exc).__name__)
        finally:
            self._active = None

        result.status = StageStatus.COMPLETED
        result.finished_at = _utcnow()
        self.job.replace_stage(result)
        await self._save()
        log.info("Stage %s completed: %s", name, result.stats)
        await self._maybe_complete()
        return result

    async def skip_stage(self, name: StageName) -> StageState:
        await self.recover_interrupted()
        self._check_gate(name)
        state = self.job.stage(name)
        if state.status not in (StageStatus.PENDING, StageStatus.ERROR):
            raise StageTransitionError(f"cannot skip '{name}' from status {state.status}")
        state.status = StageStatus.SKIPPED
        state.finished_at = _utcnow()
        await self._save()
        log.info("Stage %s skipped for job %s", name, self.job.id)
        await self._maybe_complete()
        return state

    async def retry_stage(self, name: StageName) -> StageState:
        """Reset an errored stage to ``pending`` so it can be started again."""

        await self.recover_interrupted()
        state = self.job.stage(name)
        if state.status is not StageStatus.ERROR:
            raise StageTransitionError(
                f"only errored stages can be retried, '{name}' is {state.status}"
            )
        state.status = StageStatus.PENDING
        state.stats = {}
        state.errors = []
        state.started_at = None
        state.finished_at = None
        await self._save()
        return state

    async def run(self, *, skip: Collection[StageName] = ()) -> ImportJob:
        """Start every remaining stage in order, stopping at the first error.

        Stages named in ``skip`` are marked skipped instead of started.
        """

        await self.recover_interrupted()
        for state in sorted(self.job.stages, key=lambda item: item.order):
            if state.status.is_done:
                continue
            if self.context.cancellation.cancelled:
                log.info("Job %s cancelled before stage %s", self.job.id, state.name)
                break
            if state.name in skip:
                await self.skip_stage(state.name)
                continue
            if state.status is StageStatus.ERROR:
                log.info("Stage %s is in error; retry it before continuing", state.name)
                break
            result = await self.start_stage(state.name)
            if result.status is StageStatus.ERROR:
                break
        return self.job

    async def recover_interrupted(self) -> list[StageName]:
        """Mark stages stuck in ``processing`` by a dead process as ``error``."""

        recovered: list[StageName] = []
        for state in list(self.job.stages):
            if state.status is StageStatus.PROCESSING and state.name is not self._active:
                await self._fail(state, INTERRUPTED_MESSAGE)
                recovered.append(state.name)
        return recovered

    def _check_gate(self, name: StageName) -> None:
        for earlier in self.job.earlier_stages(name):
            if not earlier.status.is_done:
                raise StageGateError(name, earlier.name, earlier.status)

    async def _fail(self, state: StageState, message: str) -> StageState:
        state.status = StageStatus.ERROR
        state.errors.append(message)
        state.finished_at = _utcnow()
        self.job.replace_stage(state)
        await self._save()
        log.warning("Stage %s marked as error: %s", state.name, message)
        return state

    async def _maybe_complete(self) -> None:
        if self.job.completed_at is not None or not self.job.terminal_stage.status.is_done:
            return
        self.job.completed_at = _utcnow()
        await self._save()
        log.info("Import job %s completed", self.job.id)
        if self.on_complete is not None:
            outcome = self.on_complete(self.job)
            if inspect.isawaitable(outcome):
                await outcome

    async def _save(self) -> None:
        if self.jobs is not None:
            await self.jobs.save(self.job)
