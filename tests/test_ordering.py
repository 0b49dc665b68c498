"""Tests for dense sibling ordering."""

import pytest

from roadmap_admin.schemas.roadmap import Level
from roadmap_admin.services.ordering import (
    insert_at,
    is_dense,
    order_payload,
    remove_and_renumber,
    renumber,
    reorder,
)


def _levels(*ids: str) -> list[Level]:
    return [Level(id=level_id, title=level_id.upper(), order=i) for i, level_id in enumerate(ids, 1)]


def _ids(items) -> list[str]:
    return [item.id for item in items]


def test_move_last_to_first():
    moved = reorder(_levels("l1", "l2", "l3"), 2, 0)

    assert _ids(moved) == ["l3", "l1", "l2"]
    assert [item.order for item in moved] == [1, 2, 3]


def test_move_forward():
    moved = reorder(_levels("a", "b", "c", "d"), 0, 2)
    assert _ids(moved) == ["b", "c", "a", "d"]
    assert is_dense(moved)


def test_move_onto_itself_is_identity():
    items = _levels("a", "b", "c")
    assert reorder(items, 1, 1) == items


def test_target_index_is_clamped():
    moved = reorder(_levels("a", "b", "c"), 0, 99)
    assert _ids(moved) == ["b", "c", "a"]

    moved = reorder(_levels("a", "b", "c"), 2, -5)
    assert _ids(moved) == ["c", "a", "b"]


@pytest.mark.parametrize("from_index", [-1, 3, 10])
def test_bad_source_index_raises(from_index):
    with pytest.raises(IndexError):
        reorder(_levels("a", "b", "c"), from_index, 0)


def test_renumber_ignores_stale_order_values():
    items = [
        Level(id="a", title="A", order=7),
        Level(id="b", title="B", order=7),
        Level(id="c", title="C", order=0),
    ]
    result = renumber(items)

    assert _ids(result) == ["a", "b", "c"]
    assert [item.order for item in result] == [1, 2, 3]


def test_renumber_is_idempotent():
    once = renumber(_levels("a", "b", "c"))
    assert renumber(once) == once


def test_renumber_keeps_input_untouched():
    items = [Level(id="a", title="A", order=5)]
    renumber(items)
    assert items[0].order == 5


def test_insert_appends_by_default():
    result = insert_at(_levels("a", "b"), Level(id="new", title="New"))
    assert _ids(result) == ["a", "b", "new"]
    assert result[-1].order == 3


def test_insert_at_position_clamps():
    result = insert_at(_levels("a", "b"), Level(id="new", title="New"), index=-3)
    assert _ids(result) == ["new", "a", "b"]
    assert is_dense(result)


def test_remove_closes_gap():
    result = remove_and_renumber(_levels("a", "b", "c"), "b")
    assert _ids(result) == ["a", "c"]
    assert [item.order for item in result] == [1, 2]


def test_sequence_of_operations_stays_dense():
    items = _levels("a", "b", "c", "d")
    items = reorder(items, 3, 1)
    items = insert_at(items, Level(id="e", title="E"), index=2)
    items = remove_and_renumber(items, "a")
    items = reorder(items, 0, 3)

    assert is_dense(items)
    assert len(items) == 4


def test_is_dense():
    assert is_dense([])
    assert is_dense(_levels("a", "b"))
    assert not is_dense([Level(id="a", order=2)])


def test_order_payload_uses_array_position():
    items = [Level(id="x", order=9), Level(id="y", order=1)]
    payload = order_payload(items)

    assert payload.model_dump() == {"order": [{"id": "x", "order": 1}, {"id": "y", "order": 2}]}
