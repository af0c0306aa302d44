"""Tests for links and the two-snapshot link list."""

from __future__ import annotations

import pytest

from linkctl.domain.filters import FilterPredicate
from linkctl.domain.rules import Channel, Link, LinkList, same_order, sort_links


def _links(*ids: str) -> list[Link]:
    return [Link(id=i, channel_id=f"CHN-{i}", rank=n + 1) for n, i in enumerate(ids)]


class TestLink:
    def test_name_falls_back(self) -> None:
        assert Link(id="L", channel_id="C").name == "Unnamed"
        assert Link(id="L", channel_id="C", channel_name="East").name == "East"

    def test_channel(self) -> None:
        link = Link(id="L", channel_id="CHN-0001", channel_name="East")
        assert link.channel == Channel(id="CHN-0001", name="East")
        assert link.channel.to_dict() == {"id": "CHN-0001", "name": "East"}

    def test_from_row(self) -> None:
        row = {
            "id": "LNK-0001",
            "rank": 2,
            "channel_id": "CHN-0001",
            "channel_name": "East",
            "filters": [{"type": "is_i", "field": "status", "value": "pending"}],
        }
        link = Link.from_row(row)
        assert link.filters == (FilterPredicate("status", "is_i", "pending"),)
        assert link.to_dict()["name"] == "East"
        assert link.find_filter("status", "is_i") == 0


class TestSortLinks:
    def test_unranked_last_in_input_order(self) -> None:
        links = [
            Link(id="x", channel_id="c"),
            Link(id="b", channel_id="c", rank=2),
            Link(id="y", channel_id="c"),
            Link(id="a", channel_id="c", rank=1),
        ]
        assert [link.id for link in sort_links(links)] == ["a", "b", "x", "y"]

    def test_same_order(self) -> None:
        assert same_order(_links("A", "B"), _links("A", "B"))
        assert not same_order(_links("A", "B"), _links("B", "A"))
        assert not same_order(_links("A"), _links("A", "B"))


class TestLinkListReorder:
    def test_move_makes_dirty(self) -> None:
        lst = LinkList("o", _links("A", "B", "C"))
        lst.move("C", 0)
        assert lst.ids() == ["C", "A", "B"]
        assert lst.is_dirty
        assert [link.id for link in lst.committed] == ["A", "B", "C"]

    def test_move_back_is_clean(self) -> None:
        lst = LinkList("o", _links("A", "B", "C"))
        lst.move("C", 0)
        lst.move("C", 2)
        assert not lst.is_dirty

    def test_move_clamps_index(self) -> None:
        lst = LinkList("o", _links("A", "B"))
        lst.move("A", 99)
        assert lst.ids() == ["B", "A"]

    def test_move_unknown(self) -> None:
        with pytest.raises(KeyError):
            LinkList("o", _links("A")).move("Z", 0)

    def test_reorder_requires_permutation(self) -> None:
        lst = LinkList("o", _links("A", "B"))
        with pytest.raises(ValueError):
            lst.reorder(["A", "A"])
        with pytest.raises(ValueError):
            lst.reorder(["A"])

    def test_rank_assignments_and_commit(self) -> None:
        lst = LinkList("o", _links("A", "B", "C"))
        lst.reorder(["C", "A", "B"])
        assert lst.rank_assignments() == [("C", 1), ("A", 2), ("B", 3)]
        lst.commit_order()
        assert not lst.is_dirty
        assert [(link.id, link.rank) for link in lst.committed] == [("C", 1), ("A", 2), ("B", 3)]


class TestLinkListConfirmedMutations:
    def test_append_goes_to_both_snapshots(self) -> None:
        lst = LinkList("o", _links("A"))
        lst.append(Link(id="B", channel_id="c"))
        assert lst.ids() == ["A", "B"]
        assert not lst.is_dirty

    def test_replace_keeps_positions(self) -> None:
        lst = LinkList("o", _links("A", "B"))
        lst.move("B", 0)
        updated = lst.get("A")
        assert updated is not None
        lst.replace(updated.with_filters([FilterPredicate("x", "is", 1)]))
        assert lst.ids() == ["B", "A"]
        assert lst.committed[0].filters == (FilterPredicate("x", "is", 1),)

    def test_remove_clears_selection(self) -> None:
        lst = LinkList("o", _links("A", "B"))
        lst.select("A")
        lst.remove("A")
        assert lst.selected is None
        assert lst.ids() == ["B"]
        assert [link.id for link in lst.committed] == ["B"]

    def test_remove_unknown(self) -> None:
        with pytest.raises(KeyError):
            LinkList("o").remove("A")


class TestSelection:
    def test_single_selection(self) -> None:
        lst = LinkList("o", _links("A", "B"))
        lst.select("A")
        lst.select("B")
        assert lst.selected_id == "B"
        lst.clear_selection()
        assert lst.selected is None

    def test_select_unknown(self) -> None:
        with pytest.raises(KeyError):
            LinkList("o").select("A")
