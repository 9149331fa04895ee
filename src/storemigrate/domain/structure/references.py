"""Classify navigation links as category, page or external targets.

Resolution order for one link:

1. slugs extracted from the URL path by the category patterns, the page
   patterns and the institutional keywords, in that order; each slug is looked
   up among categories first, then pages;
2. the slug derived from the link label, looked up the same way;
3. otherwise the link is external and keeps its URL.

Resolution is pure: it only reads the ``ReferenceLookup`` it is given.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final
from urllib.parse import unquote, urlsplit

from storemigrate.domain.model import ItemType
from storemigrate.domain.text import label_slug, path_segment_slug, slugify

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from uuid import UUID

    from storemigrate.domain.ports.persistence import StoredRef

CATEGORY_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"/(?:collections?|categorias?|category|categories)/([^/?#]+)"),
    re.compile(r"/(?:departamentos?|departments?)/([^/?#]+)"),
    re.compile(r"/c/([^/?#]+)"),
)
PAGE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"/(?:pages?|paginas?)/([^/?#]+)"),
    re.compile(r"/(?:policies|politicas?)/([^/?#]+)"),
)
# institutional paths that stores publish without a /pages/ prefix
INSTITUTIONAL_KEYWORDS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"/(?:sobre|about|quem-somos|about-us)(?:/|$)"), "sobre"),
    (re.compile(r"/(?:contato|contact|fale-conosco)(?:/|$)"), "contato"),
    (re.compile(r"/(?:politica|policy|privacidade|privacy)(?:/|$)"), "politica-privacidade"),
    (re.compile(r"/(?:termos|terms|condicoes)(?:/|$)"), "termos"),
    (re.compile(r"/(?:troca|devolucao|exchange|return)s?(?:/|$)"), "trocas-devolucoes"),
    (re.compile(r"/(?:faq|ajuda|help|perguntas)(?:/|$)"), "faq"),
    (re.compile(r"/(?:entrega|shipping|frete)(?:/|$)"), "entrega"),
)

CATEGORY_URL_TEMPLATE: Final[str] = "/categoria/{slug}"
PAGE_URL_TEMPLATE: Final[str] = "/pagina/{slug}"


@dataclass(frozen=True, slots=True)
class ReferenceMatch:
    item_type: ItemType
    url: str
    ref_id: UUID | None = None
    slug: str | None = None

    @property
    def resolved(self) -> bool:
        return self.item_type is not ItemType.EXTERNAL


@dataclass(slots=True)
class ReferenceLookup:
    """Already-imported categories and pages indexed by slug and label-derived slug."""

    categories: dict[str, StoredRef] = field(default_factory=dict)
    pages: dict[str, StoredRef] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        categories: Iterable[StoredRef] = (),
        pages: Iterable[StoredRef] = (),
    ) -> ReferenceLookup:
        return cls(categories=_index(categories), pages=_index(pages))

    def category(self, key: str) -> StoredRef | None:
        return self.categories.get(key)

    def page(self, key: str) -> StoredRef | None:
        return self.pages.get(key)


def resolve_reference(url: str, label: str, lookup: ReferenceLookup) -> ReferenceMatch | None:
    """Return the internal target for a link, or ``None`` when nothing matches."""

    for candidate in _candidate_slugs(url, label):
        match = _lookup(candidate, lookup)
        if match is not None:
            return match
    return None


def classify_link(url: str, label: str, lookup: ReferenceLookup) -> ReferenceMatch:
    """Like ``resolve_reference`` but unresolved links come back as external."""

    match = resolve_reference(url, label, lookup)
    if match is not None:
        return match
    return ReferenceMatch(item_type=ItemType.EXTERNAL, url=url)


def extract_path_slugs(url: str) -> list[str]:
    """Slugs suggested by the URL path alone, in resolution order."""

    path = _path_of(url)
    if path is None:
        return []
    slugs: list[str] = []
    for pattern in (*CATEGORY_PATTERNS, *PAGE_PATTERNS):
        found = pattern.search(path)
        if found is not None:
            segment = found.group(1)
            # accent-folded first so "calçados" meets the imported "calcados"
            for slug in (slugify(segment), path_segment_slug(segment)):
                if slug and slug not in slugs:
                    slugs.append(slug)
    for pattern, slug in INSTITUTIONAL_KEYWORDS:
        if pattern.search(path) is not None and slug not in slugs:
            slugs.append(slug)
    return slugs


def _candidate_slugs(url: str, label: str) -> Iterator[str]:
    seen: set[str] = set()
    for slug in (*extract_path_slugs(url), label_slug(label), slugify(label)):
        if slug and slug not in seen:
            seen.add(slug)
            yield slug


def _lookup(slug: str, lookup: ReferenceLookup) -> ReferenceMatch | None:
    category = lookup.category(slug)
    if category is not None:
        return ReferenceMatch(
            item_type=ItemType.CATEGORY,
            url=CATEGORY_URL_TEMPLATE.format(slug=category.slug),
            ref_id=category.id,
            slug=category.slug,
        )
    page = lookup.page(slug)
    if page is not None:
        return ReferenceMatch(
            item_type=ItemType.PAGE,
            url=PAGE_URL_TEMPLATE.format(slug=page.slug),
            ref_id=page.id,
            slug=page.slug,
        )
    return None


def _path_of(url: str) -> str | None:
    if not url or url.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        return None
    return unquote(path).lower() or None


def _index(refs: Iterable[StoredRef]) -> dict[str, StoredRef]:
    ordered = list(refs)
    index: dict[str, StoredRef] = {ref.slug.lower(): ref for ref in reversed(ordered)}
    for ref in ordered:
        for key in (label_slug(ref.name), slugify(ref.name)):
            if key:
                index.setdefault(key, ref)
    return index
