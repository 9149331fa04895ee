"""Slug and label helpers shared by the ingest and structure packages."""

from __future__ import annotations

import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")
_PATH_SEGMENT_JUNK = re.compile(r"[^a-z0-9-]")
_HEADER_SEPARATORS = re.compile(r"[\s_\-]+")


def slugify(value: str) -> str:
    """ASCII slug: accents stripped, lowercase, runs of other characters -> '-'."""

    text = unicodedata.normalize("NFKD", value)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_SLUG.sub("-", text.lower()).strip("-")


def label_slug(label: str) -> str:
    """Slug derived from a navigation label: lowercase, whitespace -> '-'."""

    return _WHITESPACE.sub("-", label.strip().lower())


def path_segment_slug(segment: str) -> str:
    return _PATH_SEGMENT_JUNK.sub("-", segment.lower())


def header_key(column: str) -> str:
    """Comparable column name: ``"Image Src"``, ``"image_src"`` and ``"ImageSrc"`` agree."""

    return _HEADER_SEPARATORS.sub("", column).lower()


def slug_to_label(slug: str) -> str:
    words = slug.replace("_", "-").split("-")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()
