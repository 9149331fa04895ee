"""Import job and per-stage state records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

from storemigrate.domain.model import (
    IMPORT_ORDER,
    Confidence,
    SourcePlatform,
    StageName,
    StageStatus,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, kw_only=True)
class StageState:
    name: StageName
    order: int
    status: StageStatus = StageStatus.PENDING
    stats: dict[str, int] = field(default_factory=dict[str, int])
    errors: list[str] = field(default_factory=list[str])
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name.value,
            "order": self.order,
            "status": self.status.value,
            "stats": dict(self.stats),
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StageState:
        return cls(
            name=StageName(data["name"]),
            order=int(data["order"]),
            status=StageStatus(data.get("status", StageStatus.PENDING)),
            stats={str(key): int(value) for key, value in dict(data.get("stats") or {}).items()},
            errors=[str(error) for error in cast(list[Any], data.get("errors") or [])],
            started_at=_parse_timestamp(data.get("started_at")),
            finished_at=_parse_timestamp(data.get("finished_at")),
        )


def initial_stages() -> list[StageState]:
    return [StageState(name=name, order=index) for index, name in enumerate(IMPORT_ORDER)]


@dataclass(slots=True, kw_only=True)
class ImportJob:
    """One structure migration attempt for a tenant; owns its stage records."""

    tenant_id: UUID
    source_url: str
    id: UUID = field(default_factory=uuid4)
    platform: SourcePlatform = SourcePlatform.UNKNOWN
    confidence: Confidence = Confidence.LOW
    stages: list[StageState] = field(default_factory=initial_stages)
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def stage(self, name: StageName) -> StageState:
        for state in self.stages:
            if state.name is name:
                return state
        raise KeyError(name)

    def replace_stage(self, state: StageState) -> None:
        for index, current in enumerate(self.stages):
            if current.name is state.name:
                self.stages[index] = state
                return
        raise KeyError(state.name)

    def earlier_stages(self, name: StageName) -> list[StageState]:
        order = self.stage(name).order
        return [state for state in self.stages if state.order < order]

    @property
    def terminal_stage(self) -> StageState:
        return max(self.stages, key=lambda state: state.order)

    @property
    def is_finished(self) -> bool:
        return all(state.status.is_done for state in self.stages)

    def status_surface(self) -> dict[str, dict[str, object]]:
        """Per-stage ``{status, stats, errors}`` for progress reporting."""

        return {
            state.name.value: {
                "status": state.status.value,
                "stats": dict(state.stats),
                "errors": list(state.errors),
            }
            for state in sorted(self.stages, key=lambda state: state.order)
        }

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "source_url": self.source_url,
            "platform": self.platform.value,
            "confidence": self.confidence.value,
            "stages": [state.to_dict() for state in self.stages],
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportJob:
        stages = [StageState.from_dict(item) for item in cast(list[Any], data["stages"])]
        created_at = _parse_timestamp(data.get("created_at")) or _utcnow()
        return cls(
            id=UUID(str(data["id"])),
            tenant_id=UUID(str(data["tenant_id"])),
            source_url=str(data["source_url"]),
            platform=SourcePlatform(data.get("platform", SourcePlatform.UNKNOWN)),
            confidence=Confidence(data.get("confidence", Confidence.LOW)),
            stages=sorted(stages, key=lambda state: state.order),
            created_at=created_at,
            completed_at=_parse_timestamp(data.get("completed_at")),
        )


def _parse_timestamp(value: object) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
