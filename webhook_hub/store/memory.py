from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from .ids import new_request_id
from .models import MUTABLE_FIELDS, Outcome, RequestRecord, RequestStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = 30 * 60
DEFAULT_SWEEP_INTERVAL_SEC = 15 * 60


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DuplicateRequestIdError(AssertionError):
    """Raised when a request id is created twice; the id generator is broken."""


class RequestStore:
    """In-memory lifecycle store for relayed webhook requests.

    Every record lives from ``create`` until the sweep reaps it after
    ``expires_at``, whatever its status. Reads of a PENDING record past its
    expiry persist the move to TIMEOUT before returning. Each record has an
    ``asyncio.Event`` that is set once the record reaches a terminal state,
    which is what ``wait_for_completion`` blocks on. Updates may come from
    other threads; the event is then set on the loop that owns the store.

    All operations take one re-entrant lock, so partial merges from the
    dispatch path can never interleave with reads, expiry or the sweep.
    """

    def __init__(
        self,
        *,
        ttl: float = DEFAULT_TTL_SEC,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._lock = threading.RLock()
        self._records: Dict[str, RequestRecord] = {}
        self._signals: Dict[str, asyncio.Event] = {}
        self._sweeper: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def new_record(
        self,
        content: str,
        destination: str,
        display_name: Optional[str] = None,
        avatar_ref: Optional[str] = None,
    ) -> RequestRecord:
        """Build a PENDING record with a fresh id and this store's TTL."""
        now = self._clock()
        return RequestRecord(
            id=new_request_id(),
            content=content,
            destination=destination,
            display_name=display_name,
            avatar_ref=avatar_ref,
            status=RequestStatus.PENDING,
            created_at=now,
            expires_at=now + self.ttl,
        )

    def create(self, record: RequestRecord) -> RequestRecord:
        with self._lock:
            if record.id in self._records:
                raise DuplicateRequestIdError(f"Request id already tracked: {record.id}")
            stored = record.model_copy(deep=True)
            self._records[record.id] = stored
            if self._loop is None:
                self._loop = _running_loop()
            self._signals[record.id] = asyncio.Event()
            if stored.status.is_terminal:
                self._signals[record.id].set()
        logger.debug("Tracking request %s -> %s", record.id, record.destination)
        return stored.model_copy(deep=True)

    def get(self, request_id: str) -> RequestRecord | None:
        with self._lock:
            record = self._records.get(request_id)
            if record is None:
                return None
            if record.status is RequestStatus.PENDING and self._clock() > record.expires_at:
                record = record.model_copy(update={"status": RequestStatus.TIMEOUT})
                self._records[request_id] = record
                self._notify(request_id)
                logger.info("Request %s expired before completing", request_id)
            return record.model_copy(deep=True)

    def update(self, request_id: str, **fields: Any) -> RequestRecord | None:
        """Merge ``fields`` into the stored record.

        Unknown ids are ignored, as are updates to records already in a
        terminal state. Returns the resulting snapshot, or None if the id is
        not tracked.
        """
        bad = set(fields) - MUTABLE_FIELDS
        if bad:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(bad))}")
        if "status" in fields:
            fields["status"] = RequestStatus(fields["status"])
        if isinstance(fields.get("outcome"), dict):
            fields["outcome"] = Outcome(**fields["outcome"])

        with self._lock:
            current = self._records.get(request_id)
            if current is None:
                logger.debug("Dropping update for unknown request %s", request_id)
                return None
            if current.status.is_terminal:
                logger.debug(
                    "Ignoring update for request %s already in %s", request_id, current.status.value
                )
                return current.model_copy(deep=True)
            merged = current.model_copy(update=fields)
            self._records[request_id] = merged
            if merged.status.is_terminal:
                self._notify(request_id)
            return merged.model_copy(deep=True)

    def sweep(self) -> int:
        """Delete every record whose expiry has passed. Returns how many went."""
        now = self._clock()
        with self._lock:
            expired = [rid for rid, rec in self._records.items() if now > rec.expires_at]
            for rid in expired:
                del self._records[rid]
                self._signals.pop(rid, None)
        if expired:
            logger.info("Swept %d expired request(s)", len(expired))
        return len(expired)

    def completion_signal(self, request_id: str) -> asyncio.Event | None:
        with self._lock:
            return self._signals.get(request_id)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in RequestStatus}
            for record in self._records.values():
                counts[record.status.value] += 1
            counts["total"] = len(self._records)
            return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _notify(self, request_id: str) -> None:
        signal = self._signals.get(request_id)
        if signal is None:
            return
        owner = self._loop
        if owner is not None and owner is not _running_loop() and not owner.is_closed():
            # asyncio events may only be set from their own loop's thread
            owner.call_soon_threadsafe(signal.set)
        else:
            signal.set()

    # Sweep task lifecycle

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._loop = asyncio.get_running_loop()
        self._sweeper = self._loop.create_task(self._sweep_forever())
        logger.info("Sweeping expired requests every %.0fs", self.sweep_interval)

    async def shutdown(self) -> None:
        """Stop the sweep task. Tracked records are dropped with the store."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
