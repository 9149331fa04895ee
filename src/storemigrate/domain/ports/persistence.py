"""Ports for persisting imported catalog data, site structure and job state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from storemigrate.domain.model import (
        Branding,
        CanonicalCategory,
        CanonicalEntity,
        CanonicalPage,
        ContentBlock,
        EntityKind,
        MenuItem,
        MenuLocation,
        SourcePlatform,
    )
    from storemigrate.domain.structure.state import ImportJob


@dataclass(slots=True)
class ImportCounts:
    """Outcome of one canonical import call (or a fold of several)."""

    imported: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list[str])

    def merge(self, other: ImportCounts) -> ImportCounts:
        return ImportCounts(
            imported=self.imported + other.imported,
            failed=self.failed + other.failed,
            errors=[*self.errors, *other.errors],
        )


@dataclass(frozen=True, slots=True)
class UpsertResult:
    id: UUID
    created: bool


@dataclass(frozen=True, slots=True)
class StoredRef:
    """Identity of an already-persisted category or page."""

    id: UUID
    slug: str
    name: str


@runtime_checkable
class CatalogImporter(Protocol):
    """Canonical import call for products, customers and orders."""

    async def import_batch(
        self,
        tenant_id: UUID,
        platform: SourcePlatform,
        kind: EntityKind,
        entities: Sequence[CanonicalEntity],
    ) -> ImportCounts: ...


@runtime_checkable
class StructureStore(Protocol):
    """Persistence contract for site structure, keyed for idempotent re-runs.

    Categories and pages upsert on ``(tenant_id, slug)``, menus on
    ``(tenant_id, location)``, branding on ``tenant_id`` and content blocks on
    ``(tenant_id, page, position)``. Menu items are replaced wholesale.
    """

    async def upsert_category(
        self, tenant_id: UUID, category: CanonicalCategory
    ) -> UpsertResult: ...

    async def upsert_page(self, tenant_id: UUID, page: CanonicalPage) -> UpsertResult: ...

    async def list_categories(self, tenant_id: UUID) -> Sequence[StoredRef]: ...

    async def list_pages(self, tenant_id: UUID) -> Sequence[StoredRef]: ...

    async def upsert_menu(self, tenant_id: UUID, location: MenuLocation, name: str) -> UUID: ...

    async def delete_menu_items(self, menu_id: UUID) -> int: ...

    async def insert_menu_item(self, item: MenuItem) -> UUID: ...

    async def save_branding(self, tenant_id: UUID, branding: Branding) -> None: ...

    async def upsert_content_block(self, tenant_id: UUID, block: ContentBlock) -> UpsertResult: ...


@runtime_checkable
class ImportJobRepository(Protocol):
    async def save(self, job: ImportJob) -> None: ...

    async def get(self, job_id: UUID) -> ImportJob | None: ...

    async def latest_for_tenant(self, tenant_id: UUID) -> ImportJob | None: ...


__all__ = [
    "CatalogImporter",
    "ImportCounts",
    "ImportJobRepository",
    "StoredRef",
    "StructureStore",
    "UpsertResult",
]
