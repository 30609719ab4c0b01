from typing import Any, Dict, Optional

import httpx
from mcp.server.fastmcp import Context

from . import record_summary, relay_from_context
from ..relay import WebhookRelay
from ..store import RequestStatus


def is_valid_url(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


def validate_message(url: str, content: str, max_payload_bytes: int) -> Optional[str]:
    """Return an error message for bad arguments, or None if they are fine."""
    if not isinstance(content, str) or not content.strip():
        return "Message content cannot be empty"
    if len(content.encode("utf-8")) > max_payload_bytes:
        return f"Message content exceeds {max_payload_bytes} bytes"
    if not isinstance(url, str) or not is_valid_url(url):
        return "Invalid webhook URL format"
    return None


async def relay_message(
    relay: WebhookRelay,
    url: str,
    content: str,
    username: Optional[str] = None,
    avatar_url: Optional[str] = None,
    wait: bool = True,
) -> Dict[str, Any]:
    error = validate_message(url, content, relay.max_payload_bytes)
    if error:
        return {"status": "error", "error": error}

    request_id, record = await relay.send(content, url, username, avatar_url, wait=wait)
    if record is None:
        return {
            "status": "pending",
            "request_id": request_id,
            "message": "No response before the wait deadline; check again with get_response",
        }

    summary = record_summary(record)
    if record.status is RequestStatus.PENDING:
        return {"status": "ok", "message": "Message queued", **summary}
    if record.status is RequestStatus.COMPLETED:
        return {"status": "ok", "message": "Message sent successfully", **summary}
    if record.status is RequestStatus.TIMEOUT:
        return {"status": "error", "error": "Request timed out", **summary}
    return {"status": "error", "error": f"Webhook error: {summary['response']}", **summary}


def register(mcp):
    @mcp.tool()
    async def send_message(
        url: str,
        content: str,
        ctx: Context,
        username: Optional[str] = None,
        avatar_url: Optional[str] = None,
        wait: bool = True,
    ) -> Dict[str, Any]:
        """Send message to a webhook endpoint and wait for response.

        Pass wait=false to return the request_id straight away and fetch the
        outcome later with get_response.
        """
        return await relay_message(relay_from_context(ctx), url, content, username, avatar_url, wait)
