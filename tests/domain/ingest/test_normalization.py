from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from storemigrate.domain.ingest.aliases import alias_table, generic_alias_table, is_image_column
from storemigrate.domain.ingest.consolidation import consolidate_product_rows
from storemigrate.domain.ingest.normalization import (
    normalize_records,
    parse_datetime,
    parse_decimal,
    split_list,
)
from storemigrate.domain.model import (
    CanonicalCustomer,
    CanonicalOrder,
    CanonicalProduct,
    EntityKind,
    ProductStatus,
    SourcePlatform,
)


def test_normalize_shopify_product_keeps_name_price_and_slug() -> None:
    records = consolidate_product_rows(
        [
            {
                "Handle": "Shirt-1",
                "Title": "Blue Shirt",
                "Variant Price": "49.90",
                "Variant SKU": "SH-P",
                "Option1 Name": "Size",
                "Option1 Value": "P",
                "Image Src": "a.jpg",
                "Status": "active",
            },
            {"Handle": "Shirt-1", "Title": "", "Option1 Value": "M", "Image Src": "b.jpg"},
        ]
    ).records

    result = normalize_records(SourcePlatform.SHOPIFY, EntityKind.PRODUCT, records)

    assert result.errors == []
    (product,) = result.entities
    assert isinstance(product, CanonicalProduct)
    assert product.name == "Blue Shirt"
    assert product.price == Decimal("49.90")
    assert product.slug == "shirt-1"
    assert product.images == ["a.jpg", "b.jpg"]
    assert [variant.options for variant in product.variants] == [{"Size": "P"}, {"Size": "M"}]
    assert product.status is ProductStatus.ACTIVE


def test_normalize_woocommerce_product_uses_sale_and_regular_prices() -> None:
    records: list[dict[str, object]] = [
        {
            "Name": "Caneca",
            "Sale price": "39,90",
            "Regular price": "49,90",
            "Categories": "Casa > Cozinha, Presentes",
            "Images": "https://x.com/1.jpg, https://x.com/2.jpg",
            "Published": "0",
        }
    ]

    (product,) = normalize_records(
        SourcePlatform.WOOCOMMERCE, EntityKind.PRODUCT, records
    ).entities

    assert isinstance(product, CanonicalProduct)
    assert product.slug == "caneca"
    assert product.price == Decimal("39.90")
    assert product.compare_at_price == Decimal("49.90")
    assert product.categories == ["cozinha", "presentes"]
    assert product.images == ["https://x.com/1.jpg", "https://x.com/2.jpg"]
    assert product.status is ProductStatus.DRAFT


def test_normalize_nuvemshop_product_takes_slug_from_url() -> None:
    records: list[dict[str, object]] = [
        {
            "Nome": "Calça Jeans",
            "URL": "https://loja.com/produtos/calca-jeans-azul/",
            "Preço": "R$ 1.299,00",
        }
    ]

    (product,) = normalize_records(SourcePlatform.NUVEMSHOP, EntityKind.PRODUCT, records).entities

    assert isinstance(product, CanonicalProduct)
    assert product.slug == "calca-jeans-azul"
    assert product.price == Decimal("1299.00")
    assert product.compare_at_price is None


def test_normalize_unknown_platform_uses_generic_aliases() -> None:
    records: list[dict[str, object]] = [{"nome": "Boné", "preço": "19.9", "estoque": "7"}]

    (product,) = normalize_records(SourcePlatform.UNKNOWN, EntityKind.PRODUCT, records).entities

    assert isinstance(product, CanonicalProduct)
    assert product.name == "Boné"
    assert product.slug == "bone"
    assert product.stock_quantity == 7


def test_normalize_records_reports_missing_required_fields() -> None:
    records: list[dict[str, object]] = [{"Title": ""}, {"Title": "Ok"}]

    result = normalize_records(SourcePlatform.SHOPIFY, EntityKind.PRODUCT, records)

    assert len(result.entities) == 1
    assert len(result.errors) == 1
    assert result.errors[0].index == 0
    assert result.errors[0].field == "name"


def test_normalize_product_collects_images_from_any_image_header() -> None:
    records: list[dict[str, object]] = [
        {"name": "Boné", "ImageSrc": "a.jpg", "image_url": "b.jpg | a.jpg", "Imagem": "c.jpg"}
    ]

    (product,) = normalize_records(SourcePlatform.UNKNOWN, EntityKind.PRODUCT, records).entities

    assert isinstance(product, CanonicalProduct)
    assert product.images == ["a.jpg", "b.jpg", "c.jpg"]


def test_normalize_records_treats_non_finite_numbers_as_missing() -> None:
    records: list[dict[str, object]] = [
        {"name": "Ok", "stock": "3"},
        {"name": "Big", "stock": float("inf"), "price": float("nan"), "compare_at_price": "10"},
    ]

    result = normalize_records(SourcePlatform.UNKNOWN, EntityKind.PRODUCT, records)

    assert result.errors == []
    ok, big = result.entities
    assert isinstance(ok, CanonicalProduct)
    assert isinstance(big, CanonicalProduct)
    assert ok.stock_quantity == 3
    assert big.stock_quantity == 0
    assert big.price is None
    assert big.compare_at_price is None


def test_normalize_customer_combines_names_and_lowercases_email() -> None:
    records: list[dict[str, object]] = [
        {
            "First Name": "Ana",
            "Last Name": "Souza",
            "Email": "Ana@Example.com",
            "Accepts Email Marketing": "yes",
            "Tags": "vip, atacado",
        },
        {"Phone": "+55 11 99999-0000"},
    ]

    result = normalize_records(SourcePlatform.SHOPIFY, EntityKind.CUSTOMER, records)

    (customer,) = result.entities
    assert isinstance(customer, CanonicalCustomer)
    assert customer.name == "Ana Souza"
    assert customer.email == "ana@example.com"
    assert customer.accepts_marketing is True
    assert customer.tags == ["vip", "atacado"]
    assert len(result.errors) == 1


def test_normalize_order_with_line_items() -> None:
    records: list[dict[str, object]] = [
        {
            "Name": "#1001",
            "Email": "ana@example.com",
            "Financial Status": "paid",
            "Total": "124.80",
            "Created at": "2024-01-05 10:00:00 -0300",
            "line_items": [
                {"name": "Blue Shirt", "quantity": "2", "price": "49.90", "sku": "SH-P"},
                {"name": "", "quantity": "1"},
            ],
        }
    ]

    (order,) = normalize_records(SourcePlatform.SHOPIFY, EntityKind.ORDER, records).entities

    assert isinstance(order, CanonicalOrder)
    assert order.order_number == "#1001"
    assert order.payment_status == "paid"
    assert order.total == Decimal("124.80")
    assert order.created_at == datetime(2024, 1, 5, 13, 0, tzinfo=UTC)
    assert [(item.name, item.quantity) for item in order.items] == [("Blue Shirt", 2)]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("49,90", Decimal("49.90")),
        ("R$ 10,00", Decimal("10.00")),
        (15, Decimal("15")),
        ("", None),
        ("abc", None),
        (float("inf"), None),
        (float("nan"), None),
    ],
)
def test_parse_decimal(raw: object, expected: Decimal | None) -> None:
    assert parse_decimal(raw) == expected


def test_parse_datetime_accepts_zulu_suffix() -> None:
    assert parse_datetime("2024-02-01T08:30:00Z") == datetime(2024, 2, 1, 8, 30, tzinfo=UTC)
    assert parse_datetime("yesterday") is None


def test_split_list_reads_json_image_objects() -> None:
    assert split_list([{"src": "a.jpg"}, {"url": "b.jpg"}, "c.jpg", ""]) == [
        "a.jpg",
        "b.jpg",
        "c.jpg",
    ]
    assert split_list("a | b ; c") == ["a", "b", "c"]


@pytest.mark.parametrize("column", ["Image Src", "ImageSrc", "image_src", "Variant Image", "imagem"])
def test_is_image_column_ignores_case_and_separators(column: str) -> None:
    assert is_image_column(column)


def test_is_image_column_rejects_other_columns() -> None:
    assert not is_image_column("Image Alt Text")
    assert not is_image_column("Title")


def test_alias_table_puts_platform_names_before_generic_ones() -> None:
    names = alias_table(SourcePlatform.SHOPIFY, EntityKind.PRODUCT)["name"]

    assert names[:2] == ("Title", "title")
    assert "Nome" in names
    assert "Name" in names


def test_alias_table_without_platform_table_is_generic() -> None:
    for kind in EntityKind:
        assert alias_table(SourcePlatform.VTEX, kind) == generic_alias_table(kind)
        assert alias_table(SourcePlatform.UNKNOWN, kind) == generic_alias_table(kind)
