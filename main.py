"""Development entrypoint for the hexbattle HTTP API."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from hexbattle.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the hexbattle API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable autoreload (dev mode)",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.reload:
        uvicorn.run(
            "hexbattle.api.app:app",
            host=args.host,
            port=args.port,
            reload=True,
            factory=False,
        )
    else:
        from hexbattle.api.app import app

        uvicorn.run(app, host=args.host, port=args.port, reload=False, factory=False)


if __name__ == "__main__":
    main()
