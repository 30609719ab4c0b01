from __future__ import annotations

from webhook_hub.server import main

if __name__ == "__main__":
	main()
