from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from .store import Outcome, RequestRecord, RequestStatus, RequestStore

logger = logging.getLogger(__name__)


def build_payload(record: RequestRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"text": record.content}
    if record.display_name is not None:
        payload["username"] = record.display_name
    if record.avatar_ref is not None:
        payload["avatar_url"] = record.avatar_ref
    return payload


def decode_body(response: httpx.Response) -> Any:
    if "application/json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def _error_message(body: Any, fallback: str) -> Any:
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    if body not in (None, ""):
        return body
    return fallback


async def dispatch(
    store: RequestStore,
    record: RequestRecord,
    http: httpx.AsyncClient,
    timeout: Optional[float] = None,
) -> RequestRecord | None:
    """POST the record's message to its destination and record the outcome.

    2xx responses complete the request. Anything else, including transport
    errors, fails it with the response status (0 when there is none). Never
    raises for network problems; the outcome lives on the record.
    """
    try:
        response = await http.post(record.destination, json=build_payload(record), timeout=timeout)
    except httpx.HTTPError as exc:
        logger.warning("Webhook %s unreachable: %s", record.id, exc)
        return store.update(
            record.id,
            status=RequestStatus.FAILED,
            outcome=Outcome(status_code=0, body=str(exc) or exc.__class__.__name__, observed_at=time.time()),
        )

    body = decode_body(response)
    outcome = Outcome(
        status_code=response.status_code,
        headers=dict(response.headers),
        body=body,
        observed_at=time.time(),
    )
    if response.is_success:
        logger.info("Webhook %s delivered (%s)", record.id, response.status_code)
        return store.update(record.id, status=RequestStatus.COMPLETED, outcome=outcome)

    logger.error("[Webhook Error] %s status=%s response=%s", record.id, response.status_code, body)
    outcome.body = _error_message(body, f"HTTP {response.status_code}")
    return store.update(record.id, status=RequestStatus.FAILED, outcome=outcome)
