"""Domain model for storefront migrations."""

from __future__ import annotations

from .catalog import (
    CanonicalCustomer,
    CanonicalEntity,
    CanonicalOrder,
    CanonicalProduct,
    OrderItem,
    ProductVariant,
)
from .content import (
    Branding,
    CanonicalCategory,
    CanonicalPage,
    ContentBlock,
    MenuItem,
    NavigationEntry,
)
from .enums import (
    IMPORT_ORDER,
    Confidence,
    EntityKind,
    ItemType,
    MenuLocation,
    ProductStatus,
    SourcePlatform,
    SourceShape,
    StageName,
    StageStatus,
)

__all__ = [
    "IMPORT_ORDER",
    "Branding",
    "CanonicalCategory",
    "CanonicalCustomer",
    "CanonicalEntity",
    "CanonicalOrder",
    "CanonicalPage",
    "CanonicalProduct",
    "Confidence",
    "ContentBlock",
    "EntityKind",
    "ItemType",
    "MenuItem",
    "MenuLocation",
    "NavigationEntry",
    "OrderItem",
    "ProductStatus",
    "ProductVariant",
    "SourcePlatform",
    "SourceShape",
    "StageName",
    "StageStatus",
]
