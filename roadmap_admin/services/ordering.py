"""Dense 1-based ordering of sibling groups.

Array position is the only input to sequencing; the ``order`` field is always
derived output (``position + 1``). Every function here is pure and returns a
new list.
"""

from collections.abc import Sequence
from typing import TypeVar

from roadmap_admin.schemas.roadmap import OrderedNode, ReorderEntry, ReorderPayload

T = TypeVar("T", bound=OrderedNode)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def renumber(items: Sequence[T]) -> list[T]:
    """Assign ``order = position + 1`` to every item."""
    return [
        item if item.order == position else item.model_copy(update={"order": position})
        for position, item in enumerate(items, start=1)
    ]


def is_dense(items: Sequence[OrderedNode]) -> bool:
    """Check that order values are exactly 1..n in array order."""
    return [item.order for item in items] == list(range(1, len(items) + 1))


def reorder(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Move the item at ``from_index`` to ``to_index`` and renumber.

    ``to_index`` is clamped to the valid range. Moving an item onto itself
    returns the input unchanged.

    Raises:
        IndexError: If ``from_index`` does not address an item
    """
    if not 0 <= from_index < len(items):
        raise IndexError(f"from_index {from_index} out of range for {len(items)} items")
    to_index = _clamp(to_index, 0, len(items) - 1)
    if from_index == to_index:
        return list(items)

    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return renumber(moved)


def insert_at(items: Sequence[T], item: T, index: int | None = None) -> list[T]:
    """Insert ``item`` (default: append) and renumber."""
    position = len(items) if index is None else _clamp(index, 0, len(items))
    inserted = list(items)
    inserted.insert(position, item)
    return renumber(inserted)


def remove_and_renumber(items: Sequence[T], item_id: str) -> list[T]:
    """Drop the item with ``item_id`` and close the gap."""
    return renumber([item for item in items if item.id != item_id])


def order_payload(items: Sequence[OrderedNode]) -> ReorderPayload:
    """Build the reorder request body for a sibling group."""
    return ReorderPayload(
        order=[ReorderEntry(id=item.id, order=position) for position, item in enumerate(items, start=1)]
    )
