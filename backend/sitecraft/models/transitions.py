from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

from sitecraft.errors import InvalidTransitionError

S = TypeVar("S", bound=Enum)


def check_transition(
    entity: str,
    table: Mapping[S, frozenset[S]],
    current: S,
    target: S,
) -> S:
    """Return *target* if the table allows ``current -> target``.

    Every member of the enum must have a row in *table*; terminal states map to
    an empty set. A missing row is a programming error and raises ``KeyError``.
    """
    allowed = table[current]
    if target not in allowed:
        raise InvalidTransitionError(entity, current.value, target.value)
    return target


def sources_for(table: Mapping[S, frozenset[S]], target: S) -> frozenset[S]:
    """States from which *target* can be reached."""
    return frozenset(state for state, targets in table.items() if target in targets)
