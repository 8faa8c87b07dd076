#!/usr/bin/env python3

import logging
import os
import sys
from defi_watchdog import create_app

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app()

    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV") == "development"

    print(f"Starting DeFi Watchdog on http://{host}:{port}")
    print("POST Solidity source to /api/analyze for a multi-model audit")
    print("Press CTRL+C to stop the server")

    try:
        app.run(host=host, port=port, debug=debug)
    except KeyboardInterrupt:
        print("\nShutting down DeFi Watchdog...")
        sys.exit(0)
