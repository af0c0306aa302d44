"""Tests for LinkStore — channels, links, ranks, and records."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from linkctl.infrastructure.gateway import MutationError
from linkctl.infrastructure.store import LinkStore


class TestChannels:
    def test_create_and_get(self, store: LinkStore) -> None:
        channel = store.create_channel("East")
        assert channel == {"id": "CHN-0001", "name": "East"}
        assert store.get_channel("CHN-0001") == channel

    def test_duplicate_name_conflicts(self, store: LinkStore) -> None:
        store.create_channel("East")
        with pytest.raises(MutationError) as exc_info:
            store.create_channel("East")
        assert exc_info.value.code == "CONFLICT"

    def test_get_missing(self, store: LinkStore) -> None:
        with pytest.raises(MutationError) as exc_info:
            store.get_channel("CHN-9999")
        assert exc_info.value.code == "NOT_FOUND"

    def test_list_ordered_by_name_and_paged(self, store: LinkStore) -> None:
        for name in ("Gamma", "Alpha", "Beta"):
            store.create_channel(name)
        names = [c["name"] for c in store.list_channels()]
        assert names == ["Alpha", "Beta", "Gamma"]
        page = store.list_channels(limit=1, offset=1)
        assert [c["name"] for c in page] == ["Beta"]

    def test_list_search(self, store: LinkStore) -> None:
        store.create_channel("Warehouse East")
        store.create_channel("Returns")
        found = store.list_channels({"name": {"contains": "WARE", "mode": "insensitive"}})
        assert [c["name"] for c in found] == ["Warehouse East"]

    def test_list_rejects_other_columns(self, store: LinkStore) -> None:
        with pytest.raises(ValueError):
            store.list_channels({"created": {"equals": "x"}})


class TestLinks:
    def test_create_link_is_unranked_and_unfiltered(self, store: LinkStore) -> None:
        channel = store.create_channel("East")
        link = store.create_link("shop", channel["id"])
        assert link == {
            "id": "LNK-0001",
            "rank": None,
            "channel_id": channel["id"],
            "channel_name": "East",
            "filters": [],
        }

    def test_create_link_unknown_channel(self, store: LinkStore) -> None:
        with pytest.raises(MutationError) as exc_info:
            store.create_link("shop", "CHN-9999")
        assert exc_info.value.code == "NOT_FOUND"

    def test_list_links_rank_then_unranked(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        seed_links("shop", ["A", "B"])
        extra = store.create_link("shop", store.create_channel("C")["id"])
        rows = store.list_links("shop")
        assert [r["channel_name"] for r in rows] == ["A", "B", "C"]
        assert [r["rank"] for r in rows] == [1, 2, None]
        assert rows[-1]["id"] == extra["id"]

    def test_list_links_per_owner(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        seed_links("shop", ["A"])
        seed_links("other", ["B"])
        assert [r["channel_name"] for r in store.list_links("other")] == ["B"]

    def test_update_link_replaces_filters(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        (row,) = seed_links("shop", ["A"])
        filters = [{"type": "is_i", "field": "status", "value": "pending"}]
        assert store.update_link(row["id"], filters) == {"id": row["id"], "filters": filters}
        assert store.list_links("shop")[0]["filters"] == filters

    def test_update_missing_link(self, store: LinkStore) -> None:
        with pytest.raises(MutationError) as exc_info:
            store.update_link("LNK-9999", [])
        assert exc_info.value.code == "NOT_FOUND"

    def test_delete_link(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        (row,) = seed_links("shop", ["A"])
        store.delete_link(row["id"])
        assert store.list_links("shop") == []
        with pytest.raises(MutationError):
            store.delete_link(row["id"])


class TestBatchUpdate:
    def _ranks(self, order: list[str]) -> list[dict[str, Any]]:
        return [{"where": {"id": i}, "data": {"rank": n + 1}} for n, i in enumerate(order)]

    def test_applies_all_ranks(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        a, b, c = (r["id"] for r in seed_links("shop", ["A", "B", "C"]))
        applied = store.batch_update_links(self._ranks([c, a, b]), [a, b, c])
        assert applied == [{"id": c, "rank": 1}, {"id": a, "rank": 2}, {"id": b, "rank": 3}]
        assert [r["id"] for r in store.list_links("shop")] == [c, a, b]

    def test_empty_batch(self, store: LinkStore) -> None:
        assert store.batch_update_links([]) == []

    def test_conflict_when_set_changed(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        a, b = (r["id"] for r in seed_links("shop", ["A", "B"]))
        store.create_link("shop", store.create_channel("Late")["id"])
        with pytest.raises(MutationError) as exc_info:
            store.batch_update_links(self._ranks([b, a]), [a, b])
        assert exc_info.value.code == "CONFLICT"
        # Nothing was written.
        assert [r["id"] for r in store.list_links("shop")][:2] == [a, b]

    def test_unknown_link_rolls_back(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        a, b = (r["id"] for r in seed_links("shop", ["A", "B"]))
        with pytest.raises(MutationError) as exc_info:
            store.batch_update_links(self._ranks([b, "LNK-9999", a]))
        assert exc_info.value.code == "NOT_FOUND"
        assert [r["rank"] for r in store.list_links("shop")] == [1, 2]

    def test_mixed_owners_conflict(
        self, store: LinkStore, seed_links: Callable[..., list[dict[str, Any]]]
    ) -> None:
        (a,) = (r["id"] for r in seed_links("shop", ["A"]))
        (b,) = (r["id"] for r in seed_links("other", ["B"]))
        with pytest.raises(MutationError) as exc_info:
            store.batch_update_links(self._ranks([a, b]))
        assert exc_info.value.code == "CONFLICT"


class TestRecords:
    def test_create_uses_label_field(self, store: LinkStore) -> None:
        item = store.create_record("order", {"order_number": "A-17", "status": "pending"})
        assert item == {"id": "REC-0001", "label": "A-17"}

    def test_label_falls_back_to_id(self, store: LinkStore) -> None:
        item = store.create_record("order", {"status": "pending"})
        assert item["label"] == item["id"]

    def test_unknown_entity(self, store: LinkStore) -> None:
        with pytest.raises(MutationError) as exc_info:
            store.create_record("invoice", {})
        assert exc_info.value.code == "UNKNOWN_ENTITY"

    def test_update_merges(self, store: LinkStore) -> None:
        item = store.create_record("order", {"order_number": "A-1", "status": "pending"})
        store.update_record("order", item["id"], {"status": "shipped", "order_number": "A-2"})
        record = store.get_record(item["id"])
        assert record["data"] == {"order_number": "A-2", "status": "shipped"}
        assert record["label"] == "A-2"
        assert record["entity_type"] == "order"

    def test_update_missing(self, store: LinkStore) -> None:
        with pytest.raises(MutationError) as exc_info:
            store.update_record("order", "REC-9999", {})
        assert exc_info.value.code == "NOT_FOUND"

    def test_query_records(
        self, store: LinkStore, seed_order: Callable[..., dict[str, Any]]
    ) -> None:
        seed_order(order_number="A-1", total=50)
        seed_order(order_number="A-2", total=500)
        rows = store.query_records("order", {"AND": [{"total": {"gte": 100}}]})
        assert [r["label"] for r in rows] == ["A-2"]
        assert len(store.query_records("order", {"AND": []})) == 2
        assert len(store.query_records("order", limit=1)) == 1
