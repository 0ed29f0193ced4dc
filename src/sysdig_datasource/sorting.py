"""
Label value sorting for template variable drop-downs.

Sort modes follow the host's variable "sort" setting. Alphabetical modes use
a locale-style collation: case is ignored first, then lowercase wins ties.
Modes 2 and 4 are labelled descending, yet they sort ascending, and mode 5
sorts exactly like mode 1. Dashboards depend on the current ordering, so the
table below is kept as-is; tests pin it.
"""

from __future__ import annotations

from typing import Any, Callable

Comparator = Callable[[Any, Any], int]


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _to_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _nulls_first(compare: Comparator) -> Comparator:
    def comparator(a: Any, b: Any) -> int:
        if a is None:
            return -1
        if b is None:
            return 1
        return compare(a, b)

    return comparator


def _collation_key(value: Any) -> tuple[str, str]:
    # Case-insensitive first; on ties lowercase sorts before uppercase
    text = str(value)
    return text.casefold(), text.swapcase()


def _alphabetical(a: Any, b: Any) -> int:
    return _cmp(_collation_key(a), _collation_key(b))


def _numerical(a: Any, b: Any) -> int:
    left, right = _to_number(a), _to_number(b)
    # Non-numeric operands compare as equal
    if left is None or right is None:
        return 0
    return _cmp(left - right, 0)


def _alphabetical_case_insensitive(a: Any, b: Any) -> int:
    return _alphabetical(a.lower(), b.lower())


LABEL_VALUES_SORTERS: dict[int, Comparator] = {
    0: _nulls_first(_alphabetical),  # disabled
    1: _nulls_first(_alphabetical),  # alphabetical (asc)
    2: _nulls_first(_alphabetical),  # alphabetical (desc), not reversed
    3: _nulls_first(_numerical),  # numerical (asc)
    4: _nulls_first(_numerical),  # numerical (desc), not reversed
    5: _nulls_first(_alphabetical),  # alphabetical, case insensitive (asc), same as mode 1
    6: _nulls_first(_alphabetical_case_insensitive),  # alphabetical, case insensitive (desc)
}


def get_label_values_sorter(mode: int | None) -> Comparator | None:
    """Return the comparator for a variable sort mode, or None if unknown."""
    if mode is None:
        return None
    return LABEL_VALUES_SORTERS.get(mode)
