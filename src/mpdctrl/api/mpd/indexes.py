"""Flattening of index specifications.

Playlist operations accept a position or song id as an int, a digit
string, a ``range`` or any nesting of lists, tuples and sets of those::

    expand_indexes(3)                       # [3]
    expand_indexes(range(0, 5))             # [0, 1, 2, 3, 4]
    expand_indexes([range(1, 4), "2", [5]]) # [1, 2, 3, 5]
"""

from collections.abc import Hashable, Iterable
from typing import Any, TypeVar

from mpdctrl.api.mpd.protocol import MpdValidationError

T = TypeVar("T", bound=Hashable)


def flatten(spec: Any) -> list[Any]:
    """Recursively flatten nested iterables into one ordered list.

    Strings and bytes are treated as scalars, not as iterables.
    """
    if isinstance(spec, (str, bytes)) or not isinstance(spec, Iterable):
        return [spec]
    items: list[Any] = []
    for item in spec:
        items.extend(flatten(item))
    return items


def unique(items: Iterable[T]) -> list[T]:
    """Drop duplicates, keeping first-occurrence order."""
    return list(dict.fromkeys(items))


def to_index(item: Any) -> int:
    """Convert one item to a non-negative int.

    Raises:
        MpdValidationError: If the item is not an int or a digit string.
    """
    if isinstance(item, bool):
        raise MpdValidationError(f"Invalid index: {item!r}")
    if isinstance(item, int):
        if item < 0:
            raise MpdValidationError(f"Invalid index: {item!r}")
        return item
    if isinstance(item, str) and item.strip().isdecimal():
        return int(item.strip())
    raise MpdValidationError(f"Invalid index: {item!r}")


def expand_indexes(spec: Any) -> list[int]:
    """Expand an index specification into a flat list of unique integers.

    Raises:
        MpdValidationError: If any item is not a non-negative integer.
    """
    return unique(to_index(item) for item in flatten(spec))
