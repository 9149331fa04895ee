"""Map raw records onto canonical entities using per-platform alias tables."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Final, cast

from storemigrate.domain.errors import MappingError
from storemigrate.domain.ingest.aliases import alias_table, is_image_column
from storemigrate.domain.model import (
    CanonicalCustomer,
    CanonicalEntity,
    CanonicalOrder,
    CanonicalProduct,
    EntityKind,
    OrderItem,
    ProductStatus,
    ProductVariant,
)
from storemigrate.domain.text import collapse_whitespace, header_key, slugify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from storemigrate.domain.ingest.aliases import AliasTable
    from storemigrate.domain.ingest.uploads import RawRecord
    from storemigrate.domain.model import SourcePlatform

log = logging.getLogger(__name__)

INACTIVE_MARKERS: Final[frozenset[str]] = frozenset(
    {"draft", "archived", "false", "0", "no", "n", "nao", "não", "inativo", "unpublished"}
)
TRUTHY_MARKERS: Final[frozenset[str]] = frozenset({"true", "1", "yes", "y", "sim", "s"})
_LIST_SPLIT: Final = re.compile(r"\s*[,|;]\s*")
_NUMBER_JUNK: Final = re.compile(r"[^0-9,.\-]")


@dataclass(slots=True)
class NormalizationResult[TEntity]:
    entities: list[TEntity] = field(default_factory=list)
    errors: list[MappingError] = field(default_factory=list[MappingError])


class _Fields:
    """Alias-aware accessor over one raw record."""

    def __init__(self, record: RawRecord, aliases: AliasTable) -> None:
        self._record = record
        self._aliases = aliases
        self._keys: dict[str, str] = {}
        for key in record:
            self._keys.setdefault(header_key(key), key)

    def values(self, canonical: str) -> list[object]:
        found: list[object] = []
        for alias in self._aliases.get(canonical, ()):
            key = alias if alias in self._record else self._keys.get(header_key(alias))
            if key is None:
                continue
            value = self._record[key]
            if _is_blank(value):
                continue
            found.append(value)
        return found

    def matching(self, predicate: Callable[[str], bool]) -> list[object]:
        return [
            value
            for key, value in self._record.items()
            if predicate(key) and not _is_blank(value)
        ]

    def first(self, canonical: str) -> object | None:
        values = self.values(canonical)
        return values[0] if values else None

    def text(self, canonical: str) -> str | None:
        value = self.first(canonical)
        if value is None or isinstance(value, (list, dict)):
            return None
        return collapse_whitespace(str(value)) or None

    def raw(self, key: str) -> object | None:
        return self._record.get(key)


def normalize_records(
    platform: SourcePlatform,
    kind: EntityKind,
    records: Iterable[RawRecord],
) -> NormalizationResult[CanonicalEntity]:
    """Build canonical entities; records missing required fields become ``MappingError``."""

    aliases = alias_table(platform, kind)
    builder = _BUILDERS[kind]
    result: NormalizationResult[CanonicalEntity] = NormalizationResult()
    for index, record in enumerate(records):
        try:
            result.entities.append(builder(_Fields(record, aliases), index))
        except MappingError as exc:
            log.debug("Dropping %s record: %s", kind, exc)
            result.errors.append(exc)
    log.info(
        "Normalized %d %s records from %s (%d dropped)",
        len(result.entities),
        kind,
        platform,
        len(result.errors),
    )
    return result


def parse_decimal(value: object) -> Decimal | None:
    """Parse prices written as ``1234.56``, ``1.234,56``, ``1234,56`` or ``R$ 10,00``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return _finite(Decimal(str(value)))
    text = _NUMBER_JUNK.sub("", str(value))
    if not text or text in {"-", ".", ","}:
        return None
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".") if text.count(",") == 1 else text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    try:
        return _finite(Decimal(text))
    except InvalidOperation:
        return None


def _finite(number: Decimal) -> Decimal | None:
    # 1e400 arrives from JSON as inf; NaN and infinities are treated as missing
    return number if number.is_finite() else None


def parse_int(value: object, *, default: int = 0) -> int:
    number = parse_decimal(value)
    if number is None:
        return default
    return int(number)


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY_MARKERS


def parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # "2024-01-05 10:00:00 -0300" as written by order exports
    text = re.sub(r"\s([+-]\d{2})(\d{2})$", r"\1:\2", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def split_list(value: object) -> list[str]:
    """Flatten list-ish values (JSON arrays, comma or pipe separated text) into strings."""

    if value is None:
        return []
    if isinstance(value, list):
        items: list[str] = []
        for item in cast(list[Any], value):
            if isinstance(item, Mapping):
                mapping = cast(Mapping[str, Any], item)
                picked = mapping.get("src") or mapping.get("url") or mapping.get("slug")
                if picked is None:
                    picked = mapping.get("name")
                if picked:
                    items.append(str(picked).strip())
            elif not _is_blank(item):
                items.append(str(item).strip())
        return items
    return [part for part in _LIST_SPLIT.split(str(value).strip()) if part]


def _build_product(fields: _Fields, index: int) -> CanonicalProduct:
    name = fields.text("name")
    if name is None:
        raise MappingError("product has no name", index=index, field="name")

    handle = fields.text("handle")
    slug = slugify(_last_path_segment(fields.text("slug")) or handle or name)
    if not slug:
        raise MappingError(f"cannot derive a slug for {name!r}", index=index, field="slug")

    variants = _variants(fields.raw("variants"))
    lead = variants[0] if variants else None
    price = parse_decimal(fields.first("price"))
    if price is None and lead is not None:
        price = lead.price
    compare_at = parse_decimal(fields.first("compare_at_price"))
    if compare_at is None and lead is not None:
        compare_at = lead.compare_at_price
    if compare_at is not None and (price is None or compare_at <= price):
        compare_at = None

    images: list[str] = []
    for value in (*fields.values("images"), *fields.matching(is_image_column)):
        for url in split_list(value):
            if url not in images:
                images.append(url)

    status = fields.text("status")
    return CanonicalProduct(
        handle=handle or slug,
        name=name,
        slug=slug,
        price=price,
        compare_at_price=compare_at,
        stock_quantity=_stock(fields, lead),
        sku=fields.text("sku") or (lead.sku if lead else None),
        description=fields.text("description"),
        status=(
            ProductStatus.DRAFT
            if status is not None and status.lower() in INACTIVE_MARKERS
            else ProductStatus.ACTIVE
        ),
        images=images,
        variants=variants,
        categories=[category for category in map(slugify, _categories(fields)) if category],
    )


def _stock(fields: _Fields, lead: ProductVariant | None) -> int:
    raw = fields.first("stock_quantity")
    if raw is None and lead is not None and lead.stock_quantity is not None:
        return lead.stock_quantity
    return parse_int(raw)


def _last_path_segment(value: str | None) -> str | None:
    if value is None or "/" not in value:
        return value
    segments = [segment for segment in value.split("?", 1)[0].split("/") if segment]
    return segments[-1] if segments else None


def _categories(fields: _Fields) -> list[str]:
    names: list[str] = []
    for value in fields.values("categories"):
        for item in split_list(value):
            # "Roupas > Camisetas" style breadcrumbs keep the leaf only
            leaf = item.rsplit(">", 1)[-1].strip()
            if leaf and leaf not in names:
                names.append(leaf)
    return names


def _variants(raw: object) -> list[ProductVariant]:
    if not isinstance(raw, list):
        return []
    variants: list[ProductVariant] = []
    for item in cast(list[Any], raw):
        if not isinstance(item, Mapping):
            continue
        data = cast(Mapping[str, Any], item)
        options = _variant_options(data)
        title = data.get("title") or data.get("name")
        variants.append(
            ProductVariant(
                name=str(title) if title else (" / ".join(options.values()) or "Default"),
                sku=str(data["sku"]) if data.get("sku") else None,
                price=parse_decimal(data.get("price")),
                compare_at_price=parse_decimal(data.get("compare_at_price")),
                stock_quantity=(
                    parse_int(data.get("inventory_quantity", data.get("stock")))
                    if data.get("inventory_quantity", data.get("stock")) is not None
                    else None
                ),
                options=options,
            )
        )
    return variants


def _variant_options(data: Mapping[str, Any]) -> dict[str, str]:
    options = data.get("options")
    if isinstance(options, Mapping):
        return {
            str(key): str(value)
            for key, value in cast(Mapping[str, Any], options).items()
            if not _is_blank(value)
        }
    positional = {
        f"Option {index}": str(data[f"option{index}"])
        for index in (1, 2, 3)
        if not _is_blank(data.get(f"option{index}"))
    }
    return positional


def _build_customer(fields: _Fields, index: int) -> CanonicalCustomer:
    email = fields.text("email")
    full_name = " ".join(
        part for part in (fields.text("first_name"), fields.text("last_name")) if part
    )
    name = fields.text("name") or full_name or email
    if not name:
        raise MappingError("customer has neither name nor email", index=index, field="name")
    marketing = fields.first("accepts_marketing")
    return CanonicalCustomer(
        name=name,
        email=email.lower() if email else None,
        phone=fields.text("phone"),
        document=fields.text("document"),
        accepts_marketing=parse_bool(marketing) if marketing is not None else False,
        tags=split_list(fields.first("tags")),
        notes=fields.text("notes"),
    )


def _build_order(fields: _Fields, index: int) -> CanonicalOrder:
    order_number = fields.text("order_number")
    if order_number is None:
        raise MappingError("order has no number", index=index, field="order_number")
    email = fields.text("customer_email")
    return CanonicalOrder(
        order_number=order_number,
        customer_name=fields.text("customer_name"),
        customer_email=email.lower() if email else None,
        status=fields.text("status"),
        payment_status=fields.text("payment_status"),
        currency=fields.text("currency"),
        subtotal=parse_decimal(fields.first("subtotal")),
        discount_total=parse_decimal(fields.first("discount_total")),
        shipping_total=parse_decimal(fields.first("shipping_total")),
        total=parse_decimal(fields.first("total")),
        items=_order_items(fields.first("items")),
        created_at=parse_datetime(fields.first("created_at")),
    )


def _order_items(raw: object) -> list[OrderItem]:
    if not isinstance(raw, list):
        return []
    items: list[OrderItem] = []
    for entry in cast(list[Any], raw):
        if not isinstance(entry, Mapping):
            continue
        data = cast(Mapping[str, Any], entry)
        name = data.get("name") or data.get("title")
        if not name:
            continue
        items.append(
            OrderItem(
                name=str(name),
                quantity=parse_int(data.get("quantity"), default=1),
                unit_price=parse_decimal(data.get("price")),
                sku=str(data["sku"]) if data.get("sku") else None,
            )
        )
    return items


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


_BUILDERS: Final[Mapping[EntityKind, Callable[[_Fields, int], CanonicalEntity]]] = {
    EntityKind.PRODUCT: _build_product,
    EntityKind.CUSTOMER: _build_customer,
    EntityKind.ORDER: _build_order,
}

__all__ = [
    "NormalizationResult",
    "normalize_records",
    "parse_bool",
    "parse_datetime",
    "parse_decimal",
    "parse_int",
    "split_list",
]
