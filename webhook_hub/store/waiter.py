from __future__ import annotations

import asyncio
import time

from .memory import RequestStore
from .models import RequestRecord

DEFAULT_WAIT_TIMEOUT_SEC = 5 * 60
DEFAULT_POLL_INTERVAL_SEC = 0.1


async def wait_for_completion(
    store: RequestStore,
    request_id: str,
    timeout: float = DEFAULT_WAIT_TIMEOUT_SEC,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
) -> RequestRecord | None:
    """Wait until the request is terminal or ``timeout`` seconds pass.

    Returns the terminal snapshot, or None at the deadline. The store's
    completion signal wakes us as soon as the dispatch lands; between wakeups
    the record is re-read every ``poll_interval`` so lazy expiry still
    applies. A missing record (never created, or already swept) counts as
    not finished yet.
    """
    deadline = time.monotonic() + timeout
    while True:
        record = store.get(request_id)
        if record is not None and record.status.is_terminal:
            return record
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        step = min(poll_interval, remaining)
        signal = store.completion_signal(request_id)
        if signal is None:
            await asyncio.sleep(step)
            continue
        try:
            await asyncio.wait_for(signal.wait(), step)
        except asyncio.TimeoutError:
            pass
