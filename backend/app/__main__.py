"""Run the knowledge-store API with Flask's development server.

``python -m backend.app [--host H] [--port P] [--config PATH] [--reload]``;
flags default to ``RECALL_HOST``, ``RECALL_PORT`` and ``RECALL_RELOAD``.
"""

from __future__ import annotations

import argparse
import logging
import os

from dotenv import load_dotenv

from engine.config import load_config

from . import create_app

LOGGER = logging.getLogger(__name__)


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="python -m backend.app")
    parser.add_argument("--host", default=os.getenv("RECALL_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("RECALL_PORT", "5050")))
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=_truthy(os.getenv("RECALL_RELOAD")),
        help="Enable the debugger and auto reload",
    )
    args = parser.parse_args(argv)

    app = create_app(load_config(args.config))
    LOGGER.info("Serving knowledge store API on %s:%s (reload=%s)", args.host, args.port, args.reload)
    app.run(host=args.host, port=args.port, debug=args.reload, use_reloader=args.reload)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
