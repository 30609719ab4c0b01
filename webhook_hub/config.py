import os
from dataclasses import dataclass
from dotenv import load_dotenv


@dataclass
class Settings:
	request_ttl_sec: float = 30 * 60
	sweep_interval_sec: float = 15 * 60
	wait_timeout_sec: float = 5 * 60
	wait_poll_sec: float = 0.1
	http_timeout_sec: float = 30.0
	max_payload_bytes: int = 1024 * 1024
	log_level: str = "INFO"
	log_file: str | None = None


def get_settings() -> Settings:
	# Load .env if present
	load_dotenv(override=False)
	return Settings(
		request_ttl_sec=float(os.getenv("WEBHOOK_REQUEST_TTL_SEC", "1800")),
		sweep_interval_sec=float(os.getenv("WEBHOOK_SWEEP_INTERVAL_SEC", "900")),
		wait_timeout_sec=float(os.getenv("WEBHOOK_WAIT_TIMEOUT_SEC", "300")),
		wait_poll_sec=int(os.getenv("WEBHOOK_WAIT_POLL_MS", "100")) / 1000.0,
		http_timeout_sec=float(os.getenv("WEBHOOK_HTTP_TIMEOUT_SEC", "30")),
		max_payload_bytes=int(os.getenv("WEBHOOK_MAX_PAYLOAD_BYTES", str(1024 * 1024))),
		log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
		log_file=os.getenv("LOG_FILE") or None,
	)
