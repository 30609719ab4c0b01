from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx

from .config import Settings
from .dispatch import dispatch
from .store import RequestRecord, RequestStore, wait_for_completion

logger = logging.getLogger(__name__)


class WebhookRelay:
    """Owns the request store, its sweep task and the outbound HTTP client.

    Built once per server process (see ``webhook_hub.server.hub_lifespan``)
    and handed to the tools; ``start``/``shutdown`` bracket its lifetime.
    """

    def __init__(
        self,
        store: RequestStore,
        http: Optional[httpx.AsyncClient] = None,
        *,
        wait_timeout: float = 300.0,
        poll_interval: float = 0.1,
        http_timeout: float = 30.0,
        max_payload_bytes: int = 1024 * 1024,
    ) -> None:
        self.store = store
        self._http = http
        self._owns_http = http is None
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self.http_timeout = http_timeout
        self.max_payload_bytes = max_payload_bytes
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings, http: Optional[httpx.AsyncClient] = None) -> "WebhookRelay":
        store = RequestStore(ttl=settings.request_ttl_sec, sweep_interval=settings.sweep_interval_sec)
        return cls(
            store,
            http,
            wait_timeout=settings.wait_timeout_sec,
            poll_interval=settings.wait_poll_sec,
            http_timeout=settings.http_timeout_sec,
            max_payload_bytes=settings.max_payload_bytes,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.http_timeout)
        return self._http

    async def start(self) -> None:
        self.store.start()

    async def shutdown(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.store.shutdown()
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
        logger.info("Webhook relay stopped")

    async def send(
        self,
        content: str,
        destination: str,
        display_name: Optional[str] = None,
        avatar_ref: Optional[str] = None,
        *,
        wait: bool = True,
        timeout: Optional[float] = None,
    ) -> tuple[str, RequestRecord | None]:
        """Track and dispatch one message.

        The dispatch always runs as a background task. With ``wait`` the caller
        waits for the terminal record, or gets None once the wait deadline
        passes; the dispatch carries on and still updates the record. Without
        it the PENDING snapshot comes back at once and callers look the outcome
        up later with ``lookup``.
        """
        record = self.store.create(
            self.store.new_record(content, destination, display_name=display_name, avatar_ref=avatar_ref)
        )
        logger.info("Relaying request %s to %s", record.id, destination)

        task = asyncio.get_running_loop().create_task(self._dispatch(record))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        if not wait:
            return record.id, record

        final = await wait_for_completion(
            self.store,
            record.id,
            timeout=self.wait_timeout if timeout is None else timeout,
            poll_interval=self.poll_interval,
        )
        return record.id, final

    def lookup(self, request_id: str) -> RequestRecord | None:
        return self.store.get(request_id)

    async def _dispatch(self, record: RequestRecord) -> None:
        await dispatch(self.store, record, self.http, timeout=self.http_timeout)
