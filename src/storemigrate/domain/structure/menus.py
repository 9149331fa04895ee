"""Persist nested navigation entries as a menu item tree."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from storemigrate.domain.errors import PersistenceError, ReferenceUnresolved
from storemigrate.domain.model import MenuItem
from storemigrate.domain.structure.references import classify_link
from storemigrate.domain.text import collapse_whitespace, slug_to_label

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from storemigrate.domain.cancellation import CancellationToken
    from storemigrate.domain.model import NavigationEntry
    from storemigrate.domain.ports.persistence import StructureStore
    from storemigrate.domain.structure.references import ReferenceLookup

log = logging.getLogger(__name__)

_TAGS: Final = re.compile(r"<[^>]+>")


@dataclass(slots=True)
class MenuBuildStats:
    inserted: int = 0
    failed: int = 0
    skipped: int = 0
    unresolved: int = 0
    errors: list[str] = field(default_factory=list[str])
    unresolved_links: list[ReferenceUnresolved] = field(
        default_factory=list[ReferenceUnresolved]
    )

    def as_stats(self) -> dict[str, int]:
        return {
            "inserted": self.inserted,
            "failed": self.failed,
            "skipped": self.skipped,
            "unresolved": self.unresolved,
        }


class MenuTreeBuilder:
    """Insert entries depth-first so every parent exists before its children.

    A failed insert is counted and its subtree skipped; siblings carry on.
    """

    def __init__(
        self,
        store: StructureStore,
        lookup: ReferenceLookup,
        *,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.cancellation = cancellation

    async def build(self, menu_id: UUID, entries: Sequence[NavigationEntry]) -> MenuBuildStats:
        stats = MenuBuildStats()
        await self._insert_level(menu_id, entries, parent_id=None, stats=stats)
        log.info(
            "Menu %s: inserted=%d failed=%d skipped=%d unresolved=%d",
            menu_id,
            stats.inserted,
            stats.failed,
            stats.skipped,
            stats.unresolved,
        )
        return stats

    async def _insert_level(
        self,
        menu_id: UUID,
        entries: Sequence[NavigationEntry],
        *,
        parent_id: UUID | None,
        stats: MenuBuildStats,
    ) -> None:
        for sort_order, entry in enumerate(entries):
            if self.cancellation is not None:
                self.cancellation.raise_if_cancelled()

            label = collapse_whitespace(_TAGS.sub("", entry.label))
            match = classify_link(entry.url, label, self.lookup)
            if not match.resolved:
                unresolved = ReferenceUnresolved(label, entry.url)
                stats.unresolved += 1
                stats.unresolved_links.append(unresolved)
                log.debug("%s", unresolved)

            item = MenuItem(
                menu_id=menu_id,
                label=label or slug_to_label(match.slug or "") or entry.url,
                url=match.url,
                item_type=match.item_type,
                ref_id=match.ref_id,
                parent_id=parent_id,
                sort_order=sort_order,
            )
            try:
                item_id = await self.store.insert_menu_item(item)
            except PersistenceError as exc:
                skipped = _count_descendants(entry)
                stats.failed += 1
                stats.skipped += skipped
                stats.errors.append(f"{item.label!r}: {exc}")
                log.warning(
                    "Menu item %r failed (%s); skipping %d children", item.label, exc, skipped
                )
                continue

            stats.inserted += 1
            if entry.children:
                await self._insert_level(menu_id, entry.children, parent_id=item_id, stats=stats)


def _count_descendants(entry: NavigationEntry) -> int:
    return sum(1 + _count_descendants(child) for child in entry.children)
