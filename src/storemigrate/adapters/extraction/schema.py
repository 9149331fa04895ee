"""Pydantic models describing the content-extraction service payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ExtractionBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BrandingPayload(ExtractionBaseModel):
    store_name: str | None = Field(default=None, alias="storeName")
    logo_url: str | None = Field(default=None, alias="logo")
    favicon_url: str | None = Field(default=None, alias="favicon")
    primary_color: str | None = Field(default=None, alias="primaryColor")
    secondary_color: str | None = Field(default=None, alias="secondaryColor")

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested_sections(cls, value: object) -> object:
        # some extractor versions nest colors and images
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        colors = data.get("colors")
        if isinstance(colors, Mapping):
            colors_map = cast(Mapping[str, object], colors)
            data.setdefault("primaryColor", colors_map.get("primary"))
            data.setdefault("secondaryColor", colors_map.get("secondary"))
        images = data.get("images")
        if isinstance(images, Mapping):
            images_map = cast(Mapping[str, object], images)
            data.setdefault("logo", images_map.get("logo"))
            data.setdefault("favicon", images_map.get("favicon"))
        return data

    _normalize_blanks = field_validator(
        "store_name", "logo_url", "favicon_url", "primary_color", "secondary_color", mode="before"
    )(_blank_to_none)


class NavigationPayload(ExtractionBaseModel):
    label: str = ""
    url: str = ""
    children: list[NavigationPayload] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_anchor_keys(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        if "label" not in data:
            data["label"] = data.get("text") or data.get("title") or ""
        if "url" not in data:
            data["url"] = data.get("href") or ""
        if data.get("children") is None:
            data["children"] = data.get("items") or []
        return data


class CategoryPayload(ExtractionBaseModel):
    name: str
    slug: str = ""
    url: str | None = None
    description: str | None = None

    _normalize_blanks = field_validator("url", "description", mode="before")(_blank_to_none)


class PagePayload(ExtractionBaseModel):
    title: str
    slug: str = ""
    url: str | None = None
    content: str | None = None

    _normalize_blanks = field_validator("url", "content", mode="before")(_blank_to_none)


class ContentBlockPayload(ExtractionBaseModel):
    block_type: str = Field(alias="type")
    position: int | None = None
    page: str = "home"
    props: dict[str, object] = Field(default_factory=dict[str, object])
    source_url: str | None = Field(default=None, alias="sourceUrl")


class ExtractionPayload(ExtractionBaseModel):
    html: str = ""
    branding: BrandingPayload | None = None
    menu_items: list[NavigationPayload] = Field(
        default_factory=list[NavigationPayload], alias="menuItems"
    )
    footer_menu_items: list[NavigationPayload] = Field(
        default_factory=list[NavigationPayload], alias="footerMenuItems"
    )
    categories: list[CategoryPayload] = Field(default_factory=list[CategoryPayload])
    institutional_pages: list[PagePayload] = Field(
        default_factory=list[PagePayload], alias="institutionalPages"
    )
    content_blocks: list[ContentBlockPayload] = Field(
        default_factory=list[ContentBlockPayload], alias="contentBlocks"
    )

    @field_validator("html", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class ExtractionResponse(ExtractionBaseModel):
    """Envelope ``{"success": bool, "data": {...}, "error": str}``."""

    success: bool = True
    data: ExtractionPayload | None = None
    error: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_payload(cls, value: object) -> object:
        if isinstance(value, Mapping) and "data" not in value and "success" not in value:
            return {"success": True, "data": value}
        return value
