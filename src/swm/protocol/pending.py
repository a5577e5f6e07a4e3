"""Bookkeeping for requests awaiting a response."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Iterable, Iterator, Optional


Resolve = Callable[[Any], None]
Reject = Callable[[BaseException], None]


class PendingRequest:
    """Correlates an outstanding request's identifier to its resolution.

    An entry is a pair of continuations rather than a future: a regular
    request resolves its own future, while every handshake attempt feeds
    the same shared outcome. The optional timer is the ``call_later``
    handle that expires the entry.
    """

    def __init__(self, message_id: str, message_type: Optional[str],
                 resolve: Resolve, reject: Reject):
        self.message_id = message_id
        self.message_type = message_type
        self.resolve = resolve
        self.reject = reject
        self.timer: Optional[asyncio.TimerHandle] = None

    def __repr__(self) -> str:
        return f"PendingRequest({self.message_id!r}, {self.message_type!r})"

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


def future_continuations(future: asyncio.Future):
    """Return a (resolve, reject) pair that settles *future* at most once.

    Settling an already-settled future is a no-op, so a response arriving
    after a previous one (``additionalResponsesExpected``) cannot break
    the dispatcher.
    """

    def resolve(payload: Any) -> None:
        if not future.done():
            future.set_result(payload)

    def reject(error: BaseException) -> None:
        if not future.done():
            future.set_exception(error)

    return resolve, reject


class PendingTable:
    """In-flight requests keyed by message identifier.

    Only the protocol engine that owns a table inserts or removes entries.
    At most one entry exists per identifier; every removal also cancels the
    entry's timer so nothing fires after the fact.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, PendingRequest] = {}

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._pending))

    def add(self, entry: PendingRequest) -> None:
        if entry.message_id in self._pending:
            raise ValueError(f"duplicate pending request id: {entry.message_id}")
        self._pending[entry.message_id] = entry

    def get(self, message_id: Any) -> Optional[PendingRequest]:
        try:
            return self._pending.get(message_id)
        except TypeError:
            # Unhashable identifier from the wire; it cannot match anything.
            return None

    def pop(self, message_id: Any) -> Optional[PendingRequest]:
        try:
            entry = self._pending.pop(message_id, None)
        except TypeError:
            return None

        if entry is not None:
            entry.cancel_timer()
        return entry

    def purge(self, message_ids: Iterable[str]) -> int:
        """Remove every listed entry; return how many were still present."""
        removed = 0
        for message_id in message_ids:
            if self.pop(message_id) is not None:
                removed += 1
        return removed

    def clear(self) -> None:
        for entry in self._pending.values():
            entry.cancel_timer()
        self._pending.clear()
