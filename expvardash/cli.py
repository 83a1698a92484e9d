"""Command-line entry point: parse flags, build settings, serve with uvicorn."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import uvicorn
from pydantic import ValidationError

from expvardash.config import Settings, get_settings
from expvardash.logging_config import setup_logging
from expvardash.main import create_app
from expvardash.utils.time import parse_interval


def build_parser() -> argparse.ArgumentParser:
    """Create the ArgumentParser. Unset flags fall back to environment settings."""
    parser = argparse.ArgumentParser(
        prog="expvardash",
        description="Poll a process's /debug/vars endpoint and serve a live dashboard of it.",
    )
    parser.add_argument("--monhost", "-monhost", dest="monitor_host", help="Host to monitor")
    parser.add_argument("--monport", "-monport", dest="monitor_port", type=int, help="Port to monitor")
    parser.add_argument("--host", dest="host", help="Interface to serve on")
    parser.add_argument("--port", "-port", dest="port", type=int, help="Port to serve expvar monitoring from")
    parser.add_argument(
        "--pollingint",
        "-pollingint",
        dest="polling_interval_seconds",
        type=parse_interval,
        help="Interval to poll host at, in seconds or as a duration such as 5s or 500ms",
    )
    parser.add_argument("--history", dest="history_length", type=int, help="Number of samples to retain")
    parser.add_argument("--timeout", dest="fetch_timeout_seconds", type=float, help="Fetch timeout in seconds")
    parser.add_argument("--static", dest="static_dir", help="Directory of static files served at /")
    parser.add_argument(
        "--no-dash",
        dest="dashboard_enabled",
        action="store_const",
        const=False,
        default=None,
        help="Disable the /dash page",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level (DEBUG, INFO, ...)")
    return parser


def settings_from_args(argv: Optional[Sequence[str]] = None) -> Settings:
    args = build_parser().parse_args(argv)
    return get_settings(**vars(args))


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        settings = settings_from_args(argv)
    except ValidationError as exc:
        print(f"expvardash: invalid configuration\n{exc}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level)

    # uvicorn exits the process itself if the port cannot be bound.
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
