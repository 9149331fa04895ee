from __future__ import annotations

from storemigrate.domain.ingest.consolidation import (
    consolidate_order_rows,
    consolidate_product_rows,
)
from storemigrate.domain.ingest.tabular import parse_table

PRODUCT_EXPORT = (
    "Handle,Title,Body (HTML),Option1 Name,Option1 Value,Variant SKU,Variant Price,Image Src\n"
    "shirt-1,Blue Shirt,<p>Soft</p>,Size,P,SH-P,49.90,a.jpg\n"
    "shirt-1,,,,M,SH-M,49.90,b.jpg\n"
    "shirt-1,,,,,,,a.jpg\n"
    "mug,Mug,,Title,Default Title,MUG-1,25.00,\n"
)


def test_consolidate_product_rows_groups_by_handle() -> None:
    table = parse_table(PRODUCT_EXPORT)

    result = consolidate_product_rows(table.rows)

    assert [record["Handle"] for record in result.records] == ["shirt-1", "mug"]
    shirt = result.records[0]
    assert shirt["Title"] == "Blue Shirt"
    assert shirt["images"] == ["a.jpg", "b.jpg"]
    assert result.warnings == []


def test_consolidate_product_rows_collects_unspaced_image_columns() -> None:
    rows = [
        {"Handle": "shirt-1", "Title": "Blue Shirt", "ImageSrc": "a.jpg"},
        {"Handle": "shirt-1", "Title": "", "ImageSrc": "b.jpg"},
    ]

    result = consolidate_product_rows(rows)

    assert len(result.records) == 1
    assert result.records[0]["Title"] == "Blue Shirt"
    assert result.records[0]["images"] == ["a.jpg", "b.jpg"]
    assert result.records[0]["ImageSrc"] == "a.jpg"


def test_consolidate_product_rows_accepts_lowercase_headers() -> None:
    rows = [
        {"handle": "cap", "title": "Cap", "image_src": "cap-front.jpg"},
        {"handle": "cap", "title": "", "image_src": "cap-back.jpg"},
    ]

    record = consolidate_product_rows(rows).records[0]

    assert record["Handle"] == "cap"
    assert record["images"] == ["cap-front.jpg", "cap-back.jpg"]


def test_consolidate_product_rows_builds_variants_with_named_options() -> None:
    result = consolidate_product_rows(parse_table(PRODUCT_EXPORT).rows)

    variants = result.records[0]["variants"]

    assert variants == [
        {"sku": "SH-P", "price": "49.90", "options": {"Size": "P"}, "title": "P"},
        {"sku": "SH-M", "price": "49.90", "options": {"Size": "M"}, "title": "M"},
    ]


def test_consolidate_product_rows_fills_blank_product_fields_from_later_rows() -> None:
    rows = [
        {"Handle": "cap", "Title": "Cap", "Vendor": "", "Variant SKU": "C-1"},
        {"Handle": "cap", "Title": "", "Vendor": "Acme", "Variant SKU": "C-2"},
    ]

    record = consolidate_product_rows(rows).records[0]

    assert record["Vendor"] == "Acme"
    assert record["Variant SKU"] == "C-1"


def test_consolidate_product_rows_copies_first_variant_into_blank_product_columns() -> None:
    rows = [
        {"Handle": "cap", "Title": "Cap", "Variant Price": ""},
        {"Handle": "cap", "Title": "", "Variant Price": "19.90", "Variant SKU": "C-1"},
    ]

    record = consolidate_product_rows(rows).records[0]

    assert record["Variant Price"] == "19.90"
    assert record["Variant SKU"] == "C-1"


def test_consolidate_product_rows_keys_title_only_rows_by_slug() -> None:
    rows = [
        {"Handle": "", "Title": "Calça Jeans"},
        {"Handle": "", "Title": ""},
    ]

    result = consolidate_product_rows(rows)

    assert [record["Handle"] for record in result.records] == ["calca-jeans"]
    assert len(result.warnings) == 1
    assert str(result.warnings[0]).startswith("row 2:")


def test_consolidate_order_rows_collects_line_items() -> None:
    rows = [
        {
            "Name": "#1001",
            "Email": "ana@example.com",
            "Financial Status": "paid",
            "Lineitem name": "Blue Shirt",
            "Lineitem quantity": "2",
            "Lineitem price": "49.90",
            "Lineitem sku": "SH-P",
        },
        {
            "Name": "#1001",
            "Email": "",
            "Financial Status": "",
            "Lineitem name": "Mug",
            "Lineitem quantity": "",
            "Lineitem price": "25.00",
            "Lineitem sku": "",
        },
        {"Name": "", "Email": "", "Financial Status": "", "Lineitem name": "orphan"},
    ]

    result = consolidate_order_rows(rows)

    assert len(result.records) == 1
    order = result.records[0]
    assert order["Email"] == "ana@example.com"
    assert order["line_items"] == [
        {"name": "Blue Shirt", "quantity": "2", "price": "49.90", "sku": "SH-P"},
        {"name": "Mug", "quantity": "1", "price": "25.00", "sku": None},
    ]
    assert len(result.warnings) == 1
