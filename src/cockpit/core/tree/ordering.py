"""
Order-preserving list primitives for move and reorder.

The store keeps every collection as a plain ordered list; these helpers are
the only place items change position.
"""

from __future__ import annotations

from typing import Callable, TypeVar

T = TypeVar("T")


def index_of(items: list[T], predicate: Callable[[T], bool]) -> int:
    """Return the index of the first item matching *predicate*, or -1."""
    for i, item in enumerate(items):
        if predicate(item):
            return i
    return -1


def clamp_index(index: int, length: int) -> int:
    """Clamp *index* to ``[0, length]``."""
    return max(0, min(index, length))


def move_item(source: list[T], target: list[T], index: int) -> T:
    """Pop ``source[index]`` and append it to *target*. Returns the item."""
    item = source.pop(index)
    target.append(item)
    return item


def reorder_item(items: list[T], from_index: int, target_index: int) -> int:
    """
    Move ``items[from_index]`` to *target_index* within the same list.

    The item is removed first, then re-inserted at *target_index* clamped to
    the shortened list, so the final position is exactly the clamped index.

    Returns:
        The index the item ended up at
    """
    item = items.pop(from_index)
    position = clamp_index(target_index, len(items))
    items.insert(position, item)
    return position


def drop_target_index(
    target_index: int,
    pointer: float,
    midpoint: float,
    dragged_index: int | None = None,
) -> int:
    """
    Translate a drop on a tile into the index expected by ``reorder_*``.

    A pointer before the target's midpoint (above or to the left, depending on
    orientation) drops *before* the target; on or past the midpoint drops
    *after* it.

    Args:
        target_index: Index of the tile under the pointer
        pointer: Pointer coordinate along the list axis
        midpoint: Midpoint of the target tile along the same axis
        dragged_index: Current index of the dragged tile when it comes from
            the same list; its removal shifts later positions down by one

    Returns:
        Index to pass to ``reorder_element`` / ``reorder_sub_element``

    Example:
        >>> drop_target_index(2, pointer=10.0, midpoint=20.0)
        2
        >>> drop_target_index(2, pointer=30.0, midpoint=20.0)
        3
        >>> drop_target_index(2, pointer=30.0, midpoint=20.0, dragged_index=0)
        2
    """
    index = target_index if pointer < midpoint else target_index + 1
    if dragged_index is not None and dragged_index < index:
        index -= 1
    return max(index, 0)
