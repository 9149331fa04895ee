"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SourcePlatform(StrEnum):
    SHOPIFY = "shopify"
    WOOCOMMERCE = "woocommerce"
    NUVEMSHOP = "nuvemshop"
    VTEX = "vtex"
    TRAY = "tray"
    UNKNOWN = "unknown"


class Confidence(StrEnum):
    HIGH = "high"
    LOW = "low"


class SourceShape(StrEnum):
    """Layout of an uploaded file, decided once from its headers or JSON root."""

    STRUCTURED = "structured"
    TABULAR = "tabular"
    FLATTENED_PRODUCTS = "flattened_products"
    FLATTENED_ORDERS = "flattened_orders"


class EntityKind(StrEnum):
    PRODUCT = "product"
    CUSTOMER = "customer"
    ORDER = "order"


class ProductStatus(StrEnum):
    ACTIVE = "active"
    DRAFT = "draft"


class ItemType(StrEnum):
    """Target kind of a navigation link after reference resolution."""

    CATEGORY = "category"
    PAGE = "page"
    EXTERNAL = "external"


class MenuLocation(StrEnum):
    HEADER = "header"
    FOOTER_1 = "footer_1"


class StageName(StrEnum):
    BRANDING = "branding"
    CATEGORIES = "categories"
    PAGES = "pages"
    MENUS = "menus"
    CONTENT_BLOCKS = "content-blocks"


class StageStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ERROR = "error"

    @property
    def is_done(self) -> bool:
        """Whether later stages may start after a stage in this status."""
        return self in (StageStatus.COMPLETED, StageStatus.SKIPPED)


IMPORT_ORDER: tuple[StageName, ...] = (
    StageName.BRANDING,
    StageName.CATEGORIES,
    StageName.PAGES,
    StageName.MENUS,
    StageName.CONTENT_BLOCKS,
)
