"""Canonical catalog entities produced by file imports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from storemigrate.domain.model.enums import EntityKind, ProductStatus

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal


@dataclass(slots=True, kw_only=True)
class ProductVariant:
    name: str
    sku: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    stock_quantity: int | None = None
    options: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(slots=True, kw_only=True)
class CanonicalProduct:
    """One sellable product; ``slug`` is unique per tenant."""

    KIND: ClassVar[EntityKind] = EntityKind.PRODUCT

    name: str
    slug: str
    handle: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    stock_quantity: int = 0
    sku: str | None = None
    description: str | None = None
    status: ProductStatus = ProductStatus.ACTIVE
    images: list[str] = field(default_factory=list[str])
    variants: list[ProductVariant] = field(default_factory=list[ProductVariant])
    categories: list[str] = field(default_factory=list[str])


@dataclass(slots=True, kw_only=True)
class CanonicalCustomer:
    KIND: ClassVar[EntityKind] = EntityKind.CUSTOMER

    name: str
    email: str | None = None
    phone: str | None = None
    document: str | None = None
    accepts_marketing: bool = False
    tags: list[str] = field(default_factory=list[str])
    notes: str | None = None


@dataclass(slots=True, kw_only=True)
class OrderItem:
    name: str
    quantity: int = 1
    unit_price: Decimal | None = None
    sku: str | None = None


@dataclass(slots=True, kw_only=True)
class CanonicalOrder:
    KIND: ClassVar[EntityKind] = EntityKind.ORDER

    order_number: str
    customer_name: str | None = None
    customer_email: str | None = None
    status: str | None = None
    payment_status: str | None = None
    currency: str | None = None
    subtotal: Decimal | None = None
    discount_total: Decimal | None = None
    shipping_total: Decimal | None = None
    total: Decimal | None = None
    items: list[OrderItem] = field(default_factory=list[OrderItem])
    created_at: datetime | None = None

    @property
    def name(self) -> str:
        return self.order_number


type CanonicalEntity = CanonicalProduct | CanonicalCustomer | CanonicalOrder
