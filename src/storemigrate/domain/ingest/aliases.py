"""Per-platform source field names for every canonical field.

Each table maps a canonical field to the source field names that may carry it,
in lookup priority order. Source names are compared with ``header_key`` so
spacing, underscores and case do not matter. A platform table is merged over
the generic table (the ordered union of every platform's aliases); platforms
without a table of their own (and ``unknown``) use the generic table alone.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from storemigrate.domain.model import EntityKind, SourcePlatform
from storemigrate.domain.text import header_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

type AliasTable = Mapping[str, tuple[str, ...]]

# any column whose header_key is listed here carries image URLs
IMAGE_HEADER_KEYS: Final[frozenset[str]] = frozenset(
    {
        "image",
        "images",
        "imagesrc",
        "imageurl",
        "imageurls",
        "variantimage",
        "imagem",
        "imagens",
        "imagemprincipal",
        "imagensadicionais",
    }
)

SHOPIFY: Final[dict[EntityKind, dict[str, tuple[str, ...]]]] = {
    EntityKind.PRODUCT: {
        "handle": ("Handle", "handle"),
        "name": ("Title", "title"),
        "slug": ("handle", "Handle"),
        "description": ("Body (HTML)", "body_html"),
        "price": ("Variant Price", "price"),
        "compare_at_price": ("Variant Compare At Price", "compare_at_price"),
        "sku": ("Variant SKU", "sku"),
        "stock_quantity": ("Variant Inventory Qty", "inventory_quantity"),
        "status": ("Status", "status", "Published", "published"),
        "images": ("images", "Image Src"),
        "categories": ("Product Category", "Type", "product_type"),
    },
    EntityKind.CUSTOMER: {
        "name": ("name",),
        "first_name": ("First Name", "first_name"),
        "last_name": ("Last Name", "last_name"),
        "email": ("Email", "email"),
        "phone": ("Phone", "phone"),
        "accepts_marketing": ("Accepts Email Marketing", "Accepts Marketing", "accepts_marketing"),
        "tags": ("Tags", "tags"),
        "notes": ("Note", "note"),
    },
    EntityKind.ORDER: {
        "order_number": ("Name", "name", "order_number"),
        "customer_name": ("Billing Name", "Shipping Name", "customer_name"),
        "customer_email": ("Email", "email"),
        "status": ("Fulfillment Status", "fulfillment_status"),
        "payment_status": ("Financial Status", "financial_status"),
        "currency": ("Currency", "currency"),
        "subtotal": ("Subtotal", "subtotal_price"),
        "discount_total": ("Discount Amount", "total_discounts"),
        "shipping_total": ("Shipping", "total_shipping"),
        "total": ("Total", "total_price"),
        "created_at": ("Created at", "created_at"),
        "items": ("line_items",),
    },
}

WOOCOMMERCE: Final[dict[EntityKind, dict[str, tuple[str, ...]]]] = {
    EntityKind.PRODUCT: {
        "name": ("Name", "name"),
        "slug": ("slug", "Slug"),
        "description": ("Description", "description", "Short description"),
        "price": ("Sale price", "sale_price", "Regular price", "regular_price", "price"),
        "compare_at_price": ("Regular price", "regular_price"),
        "sku": ("SKU", "sku"),
        "stock_quantity": ("Stock", "stock_quantity"),
        "status": ("Published", "status"),
        "images": ("Images", "images"),
        "categories": ("Categories", "categories"),
    },
    EntityKind.CUSTOMER: {
        "first_name": ("First Name", "first_name"),
        "last_name": ("Last Name", "last_name"),
        "email": ("Email", "email", "Customer Email"),
        "phone": ("Billing Phone", "phone"),
        "notes": ("customer_note",),
    },
    EntityKind.ORDER: {
        "order_number": ("Order Number", "Order ID", "number"),
        "customer_name": ("Customer Name",),
        "customer_email": ("Customer Email", "email"),
        "status": ("Order Status", "status"),
        "payment_status": ("Payment Status", "date_paid"),
        "currency": ("Order Currency", "currency"),
        "subtotal": ("Order Subtotal",),
        "discount_total": ("Order Discount", "discount_total"),
        "shipping_total": ("Order Shipping", "shipping_total"),
        "total": ("Order Total", "total"),
        "created_at": ("Order Date", "date_created"),
        "items": ("line_items",),
    },
}

NUVEMSHOP: Final[dict[EntityKind, dict[str, tuple[str, ...]]]] = {
    EntityKind.PRODUCT: {
        "handle": ("handle",),
        "name": ("Nome", "name"),
        "slug": ("URL", "handle"),
        "description": ("Descrição", "description"),
        "price": ("Preço promocional", "Preço", "price"),
        "compare_at_price": ("Preço",),
        "sku": ("SKU", "sku"),
        "stock_quantity": ("Estoque", "stock"),
        "status": ("Ativo", "published"),
        "images": ("images", "Imagem principal", "Imagens adicionais"),
        "categories": ("Categoria", "categories"),
    },
    EntityKind.CUSTOMER: {
        "name": ("Nome", "name"),
        "email": ("E-mail", "email"),
        "phone": ("Telefone", "phone"),
        "document": ("CPF/CNPJ", "identification"),
        "accepts_marketing": ("Aceita marketing", "accepts_marketing"),
        "notes": ("Observações", "note"),
    },
    EntityKind.ORDER: {
        "order_number": ("Número", "number"),
        "customer_name": ("Cliente", "billing_name"),
        "customer_email": ("E-mail do cliente", "email"),
        "status": ("Status do envio", "shipping_status", "Status", "status"),
        "payment_status": ("Status do pagamento", "payment_status"),
        "currency": ("currency",),
        "subtotal": ("Subtotal", "subtotal"),
        "discount_total": ("Desconto", "discount"),
        "shipping_total": ("Frete", "shipping"),
        "total": ("Total", "total"),
        "created_at": ("Data", "created_at"),
        "items": ("products", "line_items"),
    },
}

TRAY: Final[dict[EntityKind, dict[str, tuple[str, ...]]]] = {
    EntityKind.PRODUCT: {
        "name": ("Nome", "name"),
        "slug": ("URL", "slug"),
        "description": ("Descrição", "description", "Descrição Curta"),
        "price": ("Preço Promocional", "promotional_price", "Preço", "price"),
        "compare_at_price": ("Preço",),
        "sku": ("Referência", "reference", "EAN", "ean"),
        "stock_quantity": ("Estoque", "stock"),
        "status": ("Ativo", "available"),
        "images": ("Imagem Principal", "Imagens Adicionais"),
        "categories": ("Categoria",),
    },
    EntityKind.CUSTOMER: {
        "name": ("Nome", "name"),
        "email": ("E-mail", "email"),
        "phone": ("Celular", "cellphone", "Telefone", "phone"),
        "document": ("CPF", "cpf", "CNPJ", "cnpj"),
        "accepts_marketing": ("Newsletter",),
        "notes": ("Observação", "observation"),
    },
    EntityKind.ORDER: {
        "order_number": ("Número", "id"),
        "customer_name": ("Cliente",),
        "customer_email": ("E-mail",),
        "status": ("Status", "status"),
        "payment_status": ("Forma de Pagamento", "payment_form"),
        "subtotal": ("Subtotal", "partial_total"),
        "discount_total": ("Desconto", "discount"),
        "shipping_total": ("Frete", "shipment_value"),
        "total": ("Total", "total"),
        "created_at": ("Data", "date"),
        "items": ("products", "line_items"),
    },
}

PLATFORM_TABLES: Final[dict[SourcePlatform, dict[EntityKind, dict[str, tuple[str, ...]]]]] = {
    SourcePlatform.SHOPIFY: SHOPIFY,
    SourcePlatform.WOOCOMMERCE: WOOCOMMERCE,
    SourcePlatform.NUVEMSHOP: NUVEMSHOP,
    SourcePlatform.TRAY: TRAY,
}


def merge_alias_tables(tables: Iterable[Mapping[str, tuple[str, ...]]]) -> AliasTable:
    """Ordered union: earlier tables win on priority, duplicates are dropped."""

    merged: dict[str, list[str]] = {}
    for table in tables:
        for canonical, aliases in table.items():
            bucket = merged.setdefault(canonical, [])
            bucket.extend(alias for alias in aliases if alias not in bucket)
    return MappingProxyType({canonical: tuple(aliases) for canonical, aliases in merged.items()})


_GENERIC: Final[dict[EntityKind, AliasTable]] = {
    kind: merge_alias_tables(table[kind] for table in PLATFORM_TABLES.values())
    for kind in EntityKind
}
_MERGED: Final[dict[tuple[SourcePlatform, EntityKind], AliasTable]] = {
    (platform, kind): merge_alias_tables((tables[kind], _GENERIC[kind]))
    for platform, tables in PLATFORM_TABLES.items()
    for kind in EntityKind
}


def alias_table(platform: SourcePlatform, kind: EntityKind) -> AliasTable:
    """Platform aliases first, then every other platform's as fallback."""

    return _MERGED.get((platform, kind), _GENERIC[kind])


def generic_alias_table(kind: EntityKind) -> AliasTable:
    return _GENERIC[kind]


def is_image_column(column: str) -> bool:
    return header_key(column) in IMAGE_HEADER_KEYS
