"""Collapse flattened multi-row exports into one raw record per entity.

Shopify-style product exports repeat the ``Handle`` on every row belonging to
a product: the first row carries the product fields, continuation rows carry
one extra image and/or one extra variant each. Order exports do the same with
the order ``Name`` and one line item per row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from storemigrate.domain.errors import ConsolidationWarning
from storemigrate.domain.ingest.aliases import is_image_column
from storemigrate.domain.ingest.normalization import split_list
from storemigrate.domain.text import slugify

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from storemigrate.domain.ingest.tabular import RawRow
    from storemigrate.domain.ingest.uploads import RawRecord

log = logging.getLogger(__name__)

VARIANT_COLUMNS: Final[dict[str, str]] = {
    "Variant SKU": "sku",
    "Variant Price": "price",
    "Variant Compare At Price": "compare_at_price",
    "Variant Inventory Qty": "inventory_quantity",
    "Variant Barcode": "barcode",
    "Variant Grams": "grams",
}
OPTION_NAME_PATTERN: Final = re.compile(r"^Option(\d+) Name$")
OPTION_VALUE_PATTERN: Final = re.compile(r"^Option(\d+) Value$")
OPTION_VALUE_TEMPLATE: Final[str] = "Option{index} Value"
ROW_ONLY_PREFIXES: Final[tuple[str, ...]] = ("Variant ", "Option", "Image ")
ORDER_NAME_COLUMNS: Final[tuple[str, ...]] = ("Name", "name", "Order Name", "order_name")
LINE_ITEM_PREFIX: Final[str] = "lineitem "


@dataclass(slots=True)
class ConsolidationResult:
    records: list[RawRecord] = field(default_factory=list["RawRecord"])
    warnings: list[ConsolidationWarning] = field(default_factory=list[ConsolidationWarning])


@dataclass(slots=True)
class _ProductGroup:
    record: RawRecord
    images: list[str] = field(default_factory=list[str])
    variants: list[dict[str, object]] = field(default_factory=list[dict[str, object]])
    option_names: dict[int, str] = field(default_factory=dict[int, str])

    def add_image(self, url: str) -> None:
        if url not in self.images:
            self.images.append(url)


def consolidate_product_rows(rows: Iterable[RawRow]) -> ConsolidationResult:
    """Group product rows by handle; one record per distinct handle, in first-seen order."""

    result = ConsolidationResult()
    groups: dict[str, _ProductGroup] = {}

    for row_number, row in enumerate(rows, start=1):
        handle = row.get("Handle", "").strip() or row.get("handle", "").strip()
        title = row.get("Title", "").strip() or row.get("title", "").strip()
        if not handle and not title:
            warning = ConsolidationWarning(
                "row has neither Handle nor Title", row_number=row_number
            )
            log.debug("Dropping product row: %s", warning)
            result.warnings.append(warning)
            continue

        key = handle or slugify(title)
        group = groups.get(key)
        if group is None:
            record: RawRecord = dict(row)
            record["Handle"] = key
            group = groups[key] = _ProductGroup(record=record)
        else:
            _fill_blank_fields(group.record, row, skip=_is_row_only_column)

        _remember_option_names(group, row)
        for column, value in row.items():
            if is_image_column(column):
                for url in split_list(value):
                    group.add_image(url)
        variant = _variant_from_row(group, row)
        if variant is not None:
            group.variants.append(variant)

    for group in groups.values():
        result.records.append(_finish_product(group))

    log.info(
        "Consolidated %d product records (%d rows dropped)",
        len(result.records),
        len(result.warnings),
    )
    return result


def consolidate_order_rows(rows: Iterable[RawRow]) -> ConsolidationResult:
    """Group order rows by order name, collecting one line item per row."""

    result = ConsolidationResult()
    orders: dict[str, RawRecord] = {}
    line_items: dict[str, list[dict[str, object]]] = {}

    for row_number, row in enumerate(rows, start=1):
        order_name = _first_present(row, ORDER_NAME_COLUMNS)
        if not order_name:
            warning = ConsolidationWarning("row has no order Name", row_number=row_number)
            log.debug("Dropping order row: %s", warning)
            result.warnings.append(warning)
            continue

        record = orders.get(order_name)
        if record is None:
            record = orders[order_name] = dict(row)
            line_items[order_name] = []
        else:
            _fill_blank_fields(record, row, skip=_is_line_item_column)

        item = _line_item_from_row(row)
        if item is not None:
            line_items[order_name].append(item)

    for order_name, record in orders.items():
        record["line_items"] = line_items[order_name]
        result.records.append(record)

    log.info(
        "Consolidated %d order records (%d rows dropped)",
        len(result.records),
        len(result.warnings),
    )
    return result


def _finish_product(group: _ProductGroup) -> RawRecord:
    record = group.record
    record["images"] = group.images
    record["variants"] = group.variants
    if group.variants and not str(record.get("Variant Price") or "").strip():
        first = group.variants[0]
        for column, key in VARIANT_COLUMNS.items():
            value = first.get(key)
            if value is not None and not str(record.get(column) or "").strip():
                record[column] = value
    return record


def _variant_from_row(group: _ProductGroup, row: Mapping[str, str]) -> dict[str, object] | None:
    options: dict[str, str] = {}
    for index, name in sorted(group.option_names.items()):
        value = row.get(OPTION_VALUE_TEMPLATE.format(index=index), "").strip()
        if value:
            options[name] = value
    fields = {
        key: row.get(column, "").strip()
        for column, key in VARIANT_COLUMNS.items()
        if row.get(column, "").strip()
    }
    if not options and "sku" not in fields and "price" not in fields:
        return None
    variant: dict[str, object] = dict(fields)
    variant["options"] = options
    variant["title"] = " / ".join(options.values()) or "Default"
    return variant


def _remember_option_names(group: _ProductGroup, row: Mapping[str, str]) -> None:
    for column, value in row.items():
        match = OPTION_NAME_PATTERN.match(column)
        if match is None or not value.strip():
            continue
        group.option_names.setdefault(int(match.group(1)), value.strip())
    # option values without a declared name still become options
    for column in row:
        match = OPTION_VALUE_PATTERN.match(column)
        if match is not None:
            index = int(match.group(1))
            group.option_names.setdefault(index, f"Option {index}")


def _line_item_from_row(row: Mapping[str, str]) -> dict[str, object] | None:
    lowered = {
        column.lower().removeprefix(LINE_ITEM_PREFIX): value.strip()
        for column, value in row.items()
        if column.lower().startswith(LINE_ITEM_PREFIX)
    }
    name = lowered.get("name")
    if not name:
        return None
    return {
        "name": name,
        "quantity": lowered.get("quantity") or "1",
        "price": lowered.get("price") or None,
        "sku": lowered.get("sku") or None,
    }


def _fill_blank_fields(
    record: RawRecord,
    row: Mapping[str, str],
    *,
    skip: Callable[[str], bool],
) -> None:
    for column, value in row.items():
        if skip(column) or not value.strip():
            continue
        current = record.get(column)
        if current is None or not str(current).strip():
            record[column] = value


def _is_row_only_column(column: str) -> bool:
    return column.startswith(ROW_ONLY_PREFIXES) or is_image_column(column)


def _is_line_item_column(column: str) -> bool:
    return column.lower().startswith(LINE_ITEM_PREFIX)


def _first_present(row: Mapping[str, str], columns: Iterable[str]) -> str:
    for column in columns:
        value = row.get(column, "").strip()
        if value:
            return value
    return ""
