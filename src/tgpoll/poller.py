"""Long-poll loop over `getUpdates`.

One request is in flight at a time. Each cycle fetches with the current
cursor, hands the batch to the sink, then advances the cursor from that
batch. Batches are delivered in fetch order and updates in the order Telegram
returned them.

Failures propagate out of the loop and stop it. The cursor is only written
after a successful fetch and delivery, so a failed cycle leaves it untouched.
An optional `RetryPolicy` retries transport errors with exponential backoff;
the default policy retries nothing.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import anyio

from tgpoll.cursor import Cursor, Uninitialized, advance
from tgpoll.entities import GetUpdatesResponse, Update
from tgpoll.errors import TelegramTransportError

logger = logging.getLogger(__name__)

Sink = Callable[[list[Update]], Awaitable[None]]


class UpdatesApi(Protocol):
    async def get_updates(
        self,
        *,
        offset: int | None,
        timeout_seconds: int,
        limit: int | None = None,
        allowed_updates: Sequence[str] | None = None,
    ) -> GetUpdatesResponse: ...


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget for transport errors.

    `max_retries` counts consecutive failed attempts that are retried before
    the error propagates; `0` makes every error fatal.
    """

    max_retries: int = 0
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0; got {self.max_retries}")
        if self.initial_backoff_seconds <= 0:
            raise ValueError(
                f"initial_backoff_seconds must be > 0; got {self.initial_backoff_seconds}"
            )
        if self.max_backoff_seconds < self.initial_backoff_seconds:
            raise ValueError(
                "max_backoff_seconds must be >= initial_backoff_seconds; "
                f"got {self.max_backoff_seconds} < {self.initial_backoff_seconds}"
            )


class UpdatePoller:
    """Drive `getUpdates` forever, one request at a time.

    The cursor is owned by the poller; nothing else reads or writes it.
    """

    def __init__(
        self,
        api: UpdatesApi,
        sink: Sink | None = None,
        *,
        timeout_seconds: int,
        limit: int | None = None,
        allowed_updates: Sequence[str] | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0; got {timeout_seconds}")
        if limit is not None and not 1 <= limit <= 100:
            raise ValueError(f"limit must be within 1..100; got {limit}")

        self._api = api
        self._sink = sink
        self._timeout_seconds = timeout_seconds
        self._limit = limit
        self._allowed_updates = (
            list(allowed_updates) if allowed_updates is not None else None
        )
        self._retry = retry or RetryPolicy()
        self._cursor: Cursor = Uninitialized()
        self._remote_failure: tuple[int | None, str | None] | None = None

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    async def _fetch(self) -> GetUpdatesResponse:
        failures = 0
        backoff_seconds = self._retry.initial_backoff_seconds
        while True:
            try:
                return await self._api.get_updates(
                    offset=self._cursor.offset,
                    timeout_seconds=self._timeout_seconds,
                    limit=self._limit,
                    allowed_updates=self._allowed_updates,
                )
            except TelegramTransportError as e:
                failures += 1
                if failures > self._retry.max_retries:
                    raise
                logger.warning(
                    "getUpdates transport error (retry %d/%d in %.1fs): %s",
                    failures,
                    self._retry.max_retries,
                    backoff_seconds,
                    e,
                )
                await anyio.sleep(backoff_seconds)
                backoff_seconds = min(backoff_seconds * 2, self._retry.max_backoff_seconds)

    async def _receive(self) -> list[Update]:
        offset = self._cursor.offset
        response = await self._fetch()
        if not response.ok:
            failure = (response.error_code, response.description)
            # Only the first of a run of identical failures logs at warning.
            level = logging.DEBUG if failure == self._remote_failure else logging.WARNING
            logger.log(
                level,
                "getUpdates returned ok=false error_code=%s description=%r; cursor stays at %s",
                response.error_code,
                response.description,
                offset,
            )
            self._remote_failure = failure
        elif self._remote_failure is not None:
            logger.info("getUpdates recovered; offset=%s", offset)
            self._remote_failure = None
        updates = response.updates
        logger.debug("getUpdates offset=%s received=%d", offset, len(updates))
        return updates

    def _commit(self, updates: list[Update]) -> None:
        self._cursor = advance(self._cursor, updates)
        if updates:
            logger.debug("cursor advanced to offset=%s", self._cursor.offset)

    async def poll_once(self) -> list[Update]:
        """Run a single fetch-deliver-advance cycle and return the batch."""

        updates = await self._receive()
        if self._sink is not None:
            await self._sink(updates)
        self._commit(updates)
        return updates

    async def run_forever(self, stop: anyio.Event | None = None) -> None:
        """Poll until an error propagates or `stop` is set.

        `stop` is checked between cycles only; an in-flight long poll is not
        interrupted by it (cancel the enclosing scope for that).

        An `ok=false` answer (e.g. 409 Conflict while a webhook is set) is
        returned by Telegram without waiting, so the loop re-polls at once
        with the same offset until it clears. It is logged at warning once
        and at debug while it repeats.
        """

        logger.info(
            "polling getUpdates: timeout_seconds=%d limit=%s allowed_updates=%s",
            self._timeout_seconds,
            self._limit,
            self._allowed_updates,
        )
        while stop is None or not stop.is_set():
            await self.poll_once()

    async def iter_updates(self, stop: anyio.Event | None = None) -> AsyncIterator[Update]:
        """Yield updates one at a time, in arrival order, across batches.

        The cursor advances once the whole batch has been yielded. The sink is
        not called.
        """

        while stop is None or not stop.is_set():
            updates = await self._receive()
            for update in updates:
                yield update
            self._commit(updates)
