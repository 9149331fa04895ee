"""Repository implementations backed by async SQLAlchemy sessions.

Writes go through one lock per repository so concurrent stage tasks never
interleave statements on a shared SQLite connection.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from storemigrate.adapters.sqlalchemy.mappings import (
    branding_table,
    category_table,
    content_block_table,
    customer_table,
    import_job_table,
    menu_item_table,
    menu_table,
    order_table,
    page_table,
    product_table,
)
from storemigrate.domain.errors import PartialInsertFailure, PersistenceError
from storemigrate.domain.model import (
    CanonicalCustomer,
    CanonicalOrder,
    CanonicalProduct,
    EntityKind,
)
from storemigrate.domain.ports.persistence import ImportCounts, StoredRef, UpsertResult
from storemigrate.domain.structure.state import ImportJob
from storemigrate.domain.text import collapse_whitespace

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from storemigrate.domain.model import (
        Branding,
        CanonicalCategory,
        CanonicalEntity,
        CanonicalPage,
        ContentBlock,
        MenuItem,
        MenuLocation,
        SourcePlatform,
    )

log = logging.getLogger(__name__)


class _SessionScoped:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.session_factory = session_factory
        self._lock = lock or asyncio.Lock()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._lock, self.session_factory() as session, session.begin():
            yield session

    async def _upsert(
        self,
        table: Table,
        key: Mapping[str, object],
        values: Mapping[str, object],
        *,
        describe: str,
    ) -> UpsertResult:
        try:
            async with self._transaction() as session:
                stmt = select(table.c.id)
                for column, value in key.items():
                    stmt = stmt.where(table.c[column] == value)
                existing = await session.scalar(stmt)
                if existing is None:
                    # rows keyed by their own id keep it, others get a fresh one
                    row: dict[str, object] = {"id": uuid.uuid4(), **key, **values}
                    await session.execute(insert(table).values(row))
                    return UpsertResult(id=cast("uuid.UUID", row["id"]), created=True)
                await session.execute(
                    update(table).where(table.c.id == existing).values(**values)
                )
                return UpsertResult(id=existing, created=False)
        except SQLAlchemyError as exc:
            log.warning("Upsert into %s failed for %s: %s", table.name, describe, exc)
            raise PartialInsertFailure(describe, exc) from exc


class SqlAlchemyStructureStore(_SessionScoped):
    """Persist categories, pages, menus, branding and content blocks."""

    async def upsert_category(
        self, tenant_id: uuid.UUID, category: CanonicalCategory
    ) -> UpsertResult:
        return await self._upsert(
            category_table,
            {"tenant_id": tenant_id, "slug": category.slug},
            {
                "name": category.name,
                "description": category.description,
                "source_url": category.source_url,
            },
            describe=f"category {category.slug}",
        )

    async def upsert_page(self, tenant_id: uuid.UUID, page: CanonicalPage) -> UpsertResult:
        return await self._upsert(
            page_table,
            {"tenant_id": tenant_id, "slug": page.slug},
            {"title": page.title, "content": page.content, "source_url": page.source_url},
            describe=f"page {page.slug}",
        )

    async def list_categories(self, tenant_id: uuid.UUID) -> list[StoredRef]:
        stmt = (
            select(category_table.c.id, category_table.c.slug, category_table.c.name)
            .where(category_table.c.tenant_id == tenant_id)
            .order_by(category_table.c.created_at, category_table.c.slug)
        )
        return await self._list_refs(stmt)

    async def list_pages(self, tenant_id: uuid.UUID) -> list[StoredRef]:
        stmt = (
            select(page_table.c.id, page_table.c.slug, page_table.c.title)
            .where(page_table.c.tenant_id == tenant_id)
            .order_by(page_table.c.created_at, page_table.c.slug)
        )
        return await self._list_refs(stmt)

    async def upsert_menu(
        self, tenant_id: uuid.UUID, location: MenuLocation, name: str
    ) -> uuid.UUID:
        result = await self._upsert(
            menu_table,
            {"tenant_id": tenant_id, "location": location},
            {"name": name},
            describe=f"menu {location}",
        )
        return result.id

    async def delete_menu_items(self, menu_id: uuid.UUID) -> int:
        try:
            async with self._transaction() as session:
                result = await session.execute(
                    delete(menu_item_table).where(menu_item_table.c.menu_id == menu_id)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not clear menu {menu_id}: {exc}") from exc
        return int(getattr(result, "rowcount", 0) or 0)

    async def insert_menu_item(self, item: MenuItem) -> uuid.UUID:
        item_id = uuid.uuid4()
        try:
            async with self._transaction() as session:
                await session.execute(
                    insert(menu_item_table).values(
                        id=item_id,
                        menu_id=item.menu_id,
                        parent_id=item.parent_id,
                        label=item.label,
                        url=item.url,
                        item_type=item.item_type,
                        ref_id=item.ref_id,
                        sort_order=item.sort_order,
                    )
                )
        except SQLAlchemyError as exc:
            raise PartialInsertFailure(f"menu item {item.label!r}", exc) from exc
        return item_id

    async def save_branding(self, tenant_id: uuid.UUID, branding: Branding) -> None:
        await self._upsert(
            branding_table,
            {"tenant_id": tenant_id},
            {
                "store_name": branding.store_name,
                "logo_url": branding.logo_url,
                "favicon_url": branding.favicon_url,
                "primary_color": branding.primary_color,
                "secondary_color": branding.secondary_color,
            },
            describe="branding",
        )

    async def upsert_content_block(
        self, tenant_id: uuid.UUID, block: ContentBlock
    ) -> UpsertResult:
        return await self._upsert(
            content_block_table,
            {"tenant_id": tenant_id, "page": block.page, "position": block.position},
            {"block_type": block.block_type, "props": block.props, "source_url": block.source_url},
            describe=f"content block {block.page}#{block.position}",
        )

    async def list_menu_items(self, menu_id: uuid.UUID) -> list[dict[str, Any]]:
        """Rows of one menu ordered by position; used for reporting."""

        stmt = (
            select(menu_item_table)
            .where(menu_item_table.c.menu_id == menu_id)
            .order_by(menu_item_table.c.sort_order)
        )
        async with self._lock, self.session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [dict(row) for row in rows]

    async def _list_refs(self, stmt: Any) -> list[StoredRef]:
        try:
            async with self._lock, self.session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read stored references: {exc}") from exc
        return [StoredRef(id=row[0], slug=row[1], name=row[2]) for row in rows]


class SqlAlchemyCatalogImporter(_SessionScoped):
    """Upsert canonical products, customers and orders one entity at a time."""

    async def import_batch(
        self,
        tenant_id: uuid.UUID,
        platform: SourcePlatform,
        kind: EntityKind,
        entities: Sequence[CanonicalEntity],
    ) -> ImportCounts:
        counts = ImportCounts()
        for entity in entities:
            if entity.KIND is not kind:
                counts.failed += 1
                counts.errors.append(f"{entity.name}: expected {kind}, got {entity.KIND}")
                continue
            table, key, values = _catalog_row(tenant_id, platform, entity)
            try:
                await self._upsert(table, key, values, describe=f"{kind} {entity.name}")
            except PartialInsertFailure as exc:
                counts.failed += 1
                counts.errors.append(str(exc))
                continue
            counts.imported += 1
        return counts


def _catalog_row(
    tenant_id: uuid.UUID, platform: SourcePlatform, entity: CanonicalEntity
) -> tuple[Table, dict[str, object], dict[str, object]]:
    payload = asdict(entity)
    match entity:
        case CanonicalProduct():
            return (
                product_table,
                {"tenant_id": tenant_id, "slug": entity.slug},
                {
                    "name": entity.name,
                    "sku": entity.sku,
                    "price": entity.price,
                    "status": entity.status,
                    "source_platform": platform,
                    "payload": payload,
                },
            )
        case CanonicalCustomer():
            return (
                customer_table,
                {"tenant_id": tenant_id, "match_key": _customer_match_key(entity)},
                {
                    "name": entity.name,
                    "email": entity.email,
                    "source_platform": platform,
                    "payload": payload,
                },
            )
        case CanonicalOrder():
            return (
                order_table,
                {"tenant_id": tenant_id, "order_number": entity.order_number},
                {
                    "customer_email": entity.customer_email,
                    "total": entity.total,
                    "source_platform": platform,
                    "payload": payload,
                },
            )


def _customer_match_key(customer: CanonicalCustomer) -> str:
    for candidate in (customer.email, customer.phone, customer.document):
        if candidate and candidate.strip():
            return candidate.strip().lower()
    return collapse_whitespace(customer.name).lower()


class SqlAlchemyImportJobRepository(_SessionScoped):
    async def save(self, job: ImportJob) -> None:
        await self._upsert(
            import_job_table,
            {"id": job.id},
            {
                "tenant_id": job.tenant_id,
                "source_url": job.source_url,
                "created_at": job.created_at,
                "completed_at": job.completed_at,
                "state": job.to_dict(),
            },
            describe=f"import job {job.id}",
        )

    async def get(self, job_id: uuid.UUID) -> ImportJob | None:
        stmt = select(import_job_table.c.state).where(import_job_table.c.id == job_id)
        return await self._load_one(stmt)

    async def latest_for_tenant(self, tenant_id: uuid.UUID) -> ImportJob | None:
        stmt = (
            select(import_job_table.c.state)
            .where(import_job_table.c.tenant_id == tenant_id)
            .order_by(import_job_table.c.created_at.desc())
            .limit(1)
        )
        return await self._load_one(stmt)

    async def _load_one(self, stmt: Any) -> ImportJob | None:
        try:
            async with self._lock, self.session_factory() as session:
                state = await session.scalar(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load import job: {exc}") from exc
        if not state:
            return None
        return ImportJob.from_dict(state)


__all__ = [
    "SqlAlchemyCatalogImporter",
    "SqlAlchemyImportJobRepository",
    "SqlAlchemyStructureStore",
]


if TYPE_CHECKING:
    from storemigrate.domain.ports.persistence import (
        CatalogImporter,
        ImportJobRepository,
        StructureStore,
    )

    _factory_stub = cast("async_sessionmaker[AsyncSession]", object())
    _store_check: StructureStore = SqlAlchemyStructureStore(_factory_stub)
    _importer_check: CatalogImporter = SqlAlchemyCatalogImporter(_factory_stub)
    _jobs_check: ImportJobRepository = SqlAlchemyImportJobRepository(_factory_stub)
