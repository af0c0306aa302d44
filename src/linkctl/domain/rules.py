"""Links, channels, and the two-snapshot link list.

A :class:`LinkList` holds the rules of one owner in two snapshots:

- ``committed``: the order last confirmed by the backend.
- ``working``: the current order, which only a local reorder may change
  ahead of the backend.

INVARIANT: every mutation other than ``move``/``reorder`` is applied to
both snapshots, and only after the backend confirmed it.
INVARIANT: at most one link is selected.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from linkctl.domain.filters import FilterPredicate, find_filter


@dataclass(frozen=True)
class Channel:
    """A destination records can be routed to."""

    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Link:
    """A channel-bound, ranked set of filter predicates."""

    id: str
    channel_id: str
    rank: int | None = None  # unassigned until the first committed reorder
    channel_name: str | None = None
    filters: tuple[FilterPredicate, ...] = ()

    @property
    def name(self) -> str:
        return self.channel_name or "Unnamed"

    @property
    def channel(self) -> Channel:
        return Channel(id=self.channel_id, name=self.name)

    def find_filter(self, field: str, operator: str) -> int | None:
        return find_filter(self.filters, field, operator)

    def with_filters(self, filters: Iterable[FilterPredicate]) -> Link:
        return dataclasses.replace(self, filters=tuple(filters))

    def with_rank(self, rank: int) -> Link:
        return dataclasses.replace(self, rank=rank)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Link:
        """Build a link from a gateway row (``filters`` in wire shape)."""
        return cls(
            id=str(row["id"]),
            channel_id=str(row["channel_id"]),
            rank=row.get("rank"),
            channel_name=row.get("channel_name"),
            filters=tuple(FilterPredicate.from_wire(f) for f in row.get("filters") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rank": self.rank,
            "channel_id": self.channel_id,
            "name": self.name,
            "filters": [f.to_wire() for f in self.filters],
        }


def sort_links(links: Iterable[Link]) -> list[Link]:
    """Order by rank; unranked links go last, keeping their input order."""
    return sorted(links, key=lambda link: (link.rank is None, link.rank or 0))


def same_order(first: Sequence[Link], second: Sequence[Link]) -> bool:
    """True when both sequences hold the same ids in the same positions."""
    if len(first) != len(second):
        return False
    return all(a.id == b.id for a, b in zip(first, second, strict=True))


class LinkList:
    """Ordered rules of one owner, with committed and working snapshots."""

    def __init__(self, owner: str, links: Iterable[Link] = ()) -> None:
        self.owner = owner
        loaded = list(links)
        self._committed: tuple[Link, ...] = tuple(loaded)
        self._working: list[Link] = loaded
        self._selected_id: str | None = None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def committed(self) -> tuple[Link, ...]:
        return self._committed

    @property
    def working(self) -> tuple[Link, ...]:
        return tuple(self._working)

    @property
    def is_dirty(self) -> bool:
        """Whether the working order differs from the committed order."""
        return not same_order(self._working, self._committed)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected(self) -> Link | None:
        if self._selected_id is None:
            return None
        return self.get(self._selected_id)

    def get(self, link_id: str) -> Link | None:
        for link in self._working:
            if link.id == link_id:
                return link
        return None

    def ids(self) -> list[str]:
        return [link.id for link in self._working]

    def __len__(self) -> int:
        return len(self._working)

    # ------------------------------------------------------------------
    # Local reorder (working snapshot only)
    # ------------------------------------------------------------------

    def move(self, link_id: str, index: int) -> None:
        """Move one link to *index* in the working order (clamped).

        Raises:
            KeyError: If the link is not in the list.
        """
        link = self.get(link_id)
        if link is None:
            raise KeyError(link_id)
        self._working.remove(link)
        index = max(0, min(index, len(self._working)))
        self._working.insert(index, link)

    def reorder(self, ids: Sequence[str]) -> None:
        """Replace the working order with *ids*.

        Raises:
            ValueError: If *ids* is not a permutation of the current ids.
        """
        current = self.ids()
        if len(ids) != len(current) or sorted(ids) != sorted(current):
            msg = f"Order must list each of {current} exactly once, got {list(ids)}"
            raise ValueError(msg)
        by_id = {link.id: link for link in self._working}
        self._working = [by_id[link_id] for link_id in ids]

    def rank_assignments(self) -> list[tuple[str, int]]:
        """``(id, rank)`` pairs for the working order, ranks starting at 1."""
        return [(link.id, index + 1) for index, link in enumerate(self._working)]

    # ------------------------------------------------------------------
    # Confirmed mutations (both snapshots)
    # ------------------------------------------------------------------

    def commit_order(self) -> None:
        """Adopt the working order as committed, with contiguous ranks."""
        self._working = [link.with_rank(index + 1) for index, link in enumerate(self._working)]
        self._committed = tuple(self._working)

    def append(self, link: Link) -> None:
        self._working.append(link)
        self._committed = (*self._committed, link)

    def replace(self, link: Link) -> None:
        """Swap in a new version of an existing link, keeping its positions.

        Raises:
            KeyError: If the link is not in the list.
        """
        if self.get(link.id) is None:
            raise KeyError(link.id)
        self._working = [link if item.id == link.id else item for item in self._working]
        self._committed = tuple(link if item.id == link.id else item for item in self._committed)

    def remove(self, link_id: str) -> None:
        """Drop a link from both snapshots and clear it if selected.

        Raises:
            KeyError: If the link is not in the list.
        """
        if self.get(link_id) is None:
            raise KeyError(link_id)
        self._working = [item for item in self._working if item.id != link_id]
        self._committed = tuple(item for item in self._committed if item.id != link_id)
        if self._selected_id == link_id:
            self._selected_id = None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, link_id: str) -> None:
        """Select a link for filter editing, deselecting any other.

        Raises:
            KeyError: If the link is not in the list.
        """
        if self.get(link_id) is None:
            raise KeyError(link_id)
        self._selected_id = link_id

    def clear_selection(self) -> None:
        self._selected_id = None
