from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
	"""Configure the ``webhook_hub`` logger tree.

	Records go to stderr because stdout carries the MCP stdio transport.
	"""
	logger = logging.getLogger("webhook_hub")
	logger.setLevel(getattr(logging, level.upper(), logging.INFO))
	if not logger.handlers:
		sh = logging.StreamHandler(sys.stderr)
		sh.setFormatter(logging.Formatter(LOG_FORMAT))
		logger.addHandler(sh)
		if log_file:
			log_dir = os.path.dirname(log_file)
			if log_dir:
				os.makedirs(log_dir, exist_ok=True)
			fh = logging.FileHandler(log_file)
			fh.setFormatter(logging.Formatter(LOG_FORMAT))
			logger.addHandler(fh)
	return logger
