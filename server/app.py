"""Application entry point for the U2F validation server."""
from __future__ import annotations

import argparse
import logging
from typing import List, Optional
from wsgiref.handlers import CGIHandler

from .config import app

# Import the route module so its decorators register endpoints with Flask.
from . import routes  # noqa: F401


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="u2f-server", description="Validate FIDO U2F responses over HTTP"
    )
    parser.add_argument(
        "--daemon",
        action="store_true",
        help="Listen for HTTP requests instead of answering a single CGI request",
    )
    args = parser.parse_args(argv)

    if args.daemon:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        app.logger.info(
            "Listening on %s:%s",
            app.config["U2F_SERVER_HOST"],
            app.config["U2F_SERVER_PORT"],
        )
        app.run(host=app.config["U2F_SERVER_HOST"], port=app.config["U2F_SERVER_PORT"])
    else:
        CGIHandler().run(app)


__all__ = ["app", "main"]


if __name__ == "__main__":  # pragma: no cover - convenience script entry point.
    main()
