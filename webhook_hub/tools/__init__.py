from __future__ import annotations

import importlib
import logging
import pkgutil
from types import ModuleType
from typing import Any, Callable

from ..store import RequestRecord

logger = logging.getLogger(__name__)


def _iter_tool_modules() -> list[ModuleType]:
	modules: list[ModuleType] = []
	package = importlib.import_module(__name__)
	for _finder, name, _ispkg in pkgutil.iter_modules(package.__path__, __name__ + "."):
		try:
			modules.append(importlib.import_module(name))
		except Exception:
			# One broken tool module should not take the whole server down
			logger.exception("Skipping tool module %s", name)
	return modules


def auto_register_tools(mcp: object) -> None:
	"""Auto-discover and register all tools that expose a register(mcp) function.

	Each module in this package may optionally define `register(mcp)`.
	"""
	for mod in _iter_tool_modules():
		register: Callable | None = getattr(mod, "register", None)  # type: ignore[arg-type]
		if callable(register):
			register(mcp)


def relay_from_context(ctx: Any):
	"""Return the WebhookRelay that the server lifespan attached to ``ctx``."""
	return ctx.request_context.lifespan_context


def record_summary(record: RequestRecord) -> dict:
	"""Flatten a record into the dict shape the tools return."""
	summary: dict[str, Any] = {
		"request_id": record.id,
		"request_status": record.status.value,
		"url": record.destination,
	}
	if record.outcome is not None:
		summary["status_code"] = record.outcome.status_code
		summary["response"] = record.outcome.body if record.outcome.body is not None else "No response data"
	else:
		summary["response"] = "No response data"
	return summary
