from typing import Any, Dict

from mcp.server.fastmcp import Context

from . import record_summary, relay_from_context
from ..relay import WebhookRelay
from ..store import RequestStatus


def lookup_response(relay: WebhookRelay, request_id: str) -> Dict[str, Any]:
    if not isinstance(request_id, str) or not request_id.strip():
        return {"status": "error", "error": "Request ID is required"}
    record = relay.lookup(request_id.strip())
    if record is None:
        return {"status": "error", "error": "Request not found", "request_id": request_id}
    summary = record_summary(record)
    if record.status is RequestStatus.TIMEOUT:
        return {"status": "error", "error": "Request timed out", **summary}
    return {"status": "ok", **summary}


def register(mcp):
    @mcp.tool()
    def get_response(request_id: str, ctx: Context) -> Dict[str, Any]:
        """Look up the status and response of an earlier send_message call."""
        return lookup_response(relay_from_context(ctx), request_id)
