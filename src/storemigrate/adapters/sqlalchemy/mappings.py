"""SQLAlchemy table metadata for imported catalog data, site structure and jobs."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

from storemigrate.domain.model import (
    ItemType,
    MenuLocation,
    ProductStatus,
    SourcePlatform,
)

UUIDColumnType = Uuid[uuid.UUID]


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JSONPayload(TypeDecorator[dict[str, Any]]):
    """JSON document stored as text; decimals and timestamps become strings."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, default=_json_default, ensure_ascii=False, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if not value:
            return {}
        loaded = json.loads(value)
        return loaded if isinstance(loaded, dict) else {}


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _timestamps() -> tuple[Column[datetime], Column[datetime]]:
    return (
        Column("created_at", UTCDateTime, nullable=False, default=utcnow),
        Column("updated_at", UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow),
    )


# Site structure --------------------------------------------------------------

category_table = Table(
    "category",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("slug", String, nullable=False),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("source_url", String, nullable=True),
    *_timestamps(),
    UniqueConstraint("tenant_id", "slug"),
)

page_table = Table(
    "page",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("slug", String, nullable=False),
    Column("title", String, nullable=False),
    Column("content", Text, nullable=True),
    Column("source_url", String, nullable=True),
    *_timestamps(),
    UniqueConstraint("tenant_id", "slug"),
)

menu_table = Table(
    "menu",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("location", Enum(MenuLocation, native_enum=False), nullable=False),
    Column("name", String, nullable=False),
    *_timestamps(),
    UniqueConstraint("tenant_id", "location"),
)

menu_item_table = Table(
    "menu_item",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("menu_id", UUIDColumnType, ForeignKey("menu.id", ondelete="CASCADE"), nullable=False),
    Column(
        "parent_id",
        UUIDColumnType,
        ForeignKey("menu_item.id", ondelete="CASCADE"),
        nullable=True,
    ),
    Column("label", String, nullable=False),
    Column("url", String, nullable=False),
    Column("item_type", Enum(ItemType, native_enum=False), nullable=False),
    Column("ref_id", UUIDColumnType, nullable=True),
    Column("sort_order", Integer, nullable=False),
    Index(None, "menu_id", "sort_order"),
)

branding_table = Table(
    "branding",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False, unique=True),
    Column("store_name", String, nullable=True),
    Column("logo_url", String, nullable=True),
    Column("favicon_url", String, nullable=True),
    Column("primary_color", String(32), nullable=True),
    Column("secondary_color", String(32), nullable=True),
    *_timestamps(),
)

content_block_table = Table(
    "content_block",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("page", String, nullable=False),
    Column("position", Integer, nullable=False),
    Column("block_type", String, nullable=False),
    Column("props", JSONPayload, nullable=False),
    Column("source_url", String, nullable=True),
    *_timestamps(),
    UniqueConstraint("tenant_id", "page", "position"),
)

# Catalog ---------------------------------------------------------------------

product_table = Table(
    "product",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("slug", String, nullable=False),
    Column("name", String, nullable=False),
    Column("sku", String, nullable=True),
    Column("price", Numeric(12, 2), nullable=True),
    Column("status", Enum(ProductStatus, native_enum=False), nullable=False),
    Column("source_platform", Enum(SourcePlatform, native_enum=False), nullable=False),
    Column("payload", JSONPayload, nullable=False),
    *_timestamps(),
    UniqueConstraint("tenant_id", "slug"),
)

customer_table = Table(
    "customer",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    # lowercased email, falling back to phone, document or name
    Column("match_key", String, nullable=False),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("source_platform", Enum(SourcePlatform, native_enum=False), nullable=False),
    Column("payload", JSONPayload, nullable=False),
    *_timestamps(),
    UniqueConstraint("tenant_id", "match_key"),
)

order_table = Table(
    "sales_order",
    metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", UUIDColumnType, nullable=False),
    Column("order_number", String, nullable=False),
    Column("customer_email", String, nullable=True),
    Column("total", Numeric(12, 2), nullable=True),
    Column("source_platform", Enum(SourcePlatform, native_enum=False), nullable=False),
    Column("payload", JSONPayload, nullable=False),
    *_timestamps(),
    UniqueConstraint("tenant_id", "order_number"),
)

# Jobs ------------------------------------------------------------------------

import_job_table = Table(
    "import_job",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("tenant_id", UUIDColumnType, nullable=False, index=True),
    Column("source_url", String, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("completed_at", UTCDateTime, nullable=True),
    Column("state", JSONPayload, nullable=False),
)
