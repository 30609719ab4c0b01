import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import Context, FastMCP

from . import __version__
from .config import get_settings
from .logs import setup_logging
from .relay import WebhookRelay
from .tools import auto_register_tools, relay_from_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def hub_lifespan(server: FastMCP) -> AsyncIterator[WebhookRelay]:
	"""Own one WebhookRelay for the life of the server process."""
	relay = WebhookRelay.from_settings(get_settings())
	await relay.start()
	logger.info("Webhook hub %s ready", __version__)
	try:
		yield relay
	finally:
		await relay.shutdown()


mcp = FastMCP("webhook-hub", lifespan=hub_lifespan)


@mcp.tool()
def health(ctx: Context) -> dict:
	"""Report how many relayed requests are tracked, by status."""
	relay: WebhookRelay = relay_from_context(ctx)
	return {"status": "ok", "version": __version__, "requests": relay.store.stats()}


def _raise_interrupt(signum, frame):
	raise KeyboardInterrupt


def main() -> None:
	settings = get_settings()
	setup_logging(settings.log_level, settings.log_file)
	auto_register_tools(mcp)
	signal.signal(signal.SIGTERM, _raise_interrupt)
	logger.info("Webhook hub running on stdio")
	try:
		mcp.run()
	except KeyboardInterrupt:
		logger.info("Interrupted, shutting down")


if __name__ == "__main__":
	main()
