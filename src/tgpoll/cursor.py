"""Update cursor for `getUpdates` long polling.

Telegram's `offset` parameter drops every update whose `update_id` is lower
than the offset, and confirms (discards server-side) everything before it.
The cursor therefore always holds "the next `update_id` we expect".

The cursor is one of two explicit states instead of a bare optional int:

- `Uninitialized`: nothing received yet; the request omits `offset` and
  Telegram answers from the start of its buffer.
- `Tracking(next_update_id)`: request with `offset=next_update_id`.

Invariant: after a non-empty batch the cursor is `max(update_id) + 1`, so no
update of that batch can be requested again. An empty batch never moves the
cursor and never resets it to `Uninitialized`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from tgpoll.entities import Update


@dataclass(frozen=True, slots=True)
class Uninitialized:
    @property
    def offset(self) -> int | None:
        return None


@dataclass(frozen=True, slots=True)
class Tracking:
    next_update_id: int

    @property
    def offset(self) -> int | None:
        return self.next_update_id


Cursor: TypeAlias = Uninitialized | Tracking


def next_update_id(updates: Iterable[Update]) -> int | None:
    """Return `max(update_id) + 1` over `updates`, or `None` if there are none.

    Duplicated ids are harmless: they share the same value.
    """

    max_update_id = max((update.update_id for update in updates), default=None)
    if max_update_id is None:
        return None
    return max_update_id + 1


def advance(cursor: Cursor, updates: Iterable[Update]) -> Cursor:
    """Return the cursor to use after `updates` were received."""

    next_id = next_update_id(updates)
    if next_id is None:
        return cursor
    return Tracking(next_id)
