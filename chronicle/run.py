"""
Command line entry point: configure logging and serve the API with uvicorn.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from chronicle.app import create_app, route_summary
from chronicle.config import get_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Chronicle backend API server")
    parser.add_argument("--host", type=str, default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Listen port")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables and seed the profile row on start",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.create_schema:
        settings = settings.model_copy(update={"db_create_schema": True})
    app = create_app(settings)

    logger.info("Server running on port %s", args.port)
    logger.info("Test API at: http://localhost:%s", args.port)
    logger.info("Available routes:\n%s", "\n".join(route_summary(app)))

    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
