# tests/helpers.py
import httpx

from webhook_hub.relay import WebhookRelay
from webhook_hub.store import RequestStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def json_transport(status_code=200, body=None, seen=None):
    """Mock transport answering every request with the same JSON reply."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.MockTransport(handler)


def make_relay(transport, ttl=60.0, **kwargs):
    http = httpx.AsyncClient(transport=transport)
    kwargs.setdefault("poll_interval", 0.01)
    return WebhookRelay(RequestStore(ttl=ttl), http, **kwargs)
