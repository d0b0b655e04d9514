#!/usr/bin/env python3
"""
Postboard -- a small social board: accounts, a global feed, profiles, likes.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py reconcile

Commands:
  serve       Run the web app under uvicorn (defaults from HOST / PORT).
  reconcile   Repair owned-post lists against post authorship, print the
              number of repaired entries, and exit.

Environment variables (see core/config.py for the full list):
  SECRET_KEY    Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL. Defaults to a SQLite file next to this script.
  COOKIE_NAME   Session cookie name. Defaults to "token".
"""

import argparse
import logging
import sys

from core.config import get_settings

logger = logging.getLogger("postboard.cli")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _reconcile(args: argparse.Namespace) -> int:
    from social import service
    from social.context import AppContext

    ctx = AppContext.from_settings(get_settings())
    try:
        repaired = service.reconcile_owned_posts(ctx)
    finally:
        ctx.close()
    print(f"Repaired {repaired} owned-post entr{'y' if repaired == 1 else 'ies'}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="postboard",
        description="Postboard -- accounts, a global feed, profiles, and likes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web app under uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 127.0.0.1).")
    serve.add_argument("--port", type=int, default=None, help="Port (default: PORT or 3000).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")
    serve.set_defaults(func=_serve)

    reconcile = sub.add_parser("reconcile", help="Repair owned-post lists and exit.")
    reconcile.set_defaults(func=_reconcile)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)-5s %(name)s %(message)s")
    try:
        return args.func(args)
    except ValueError as exc:
        # Settings validation (e.g. missing SECRET_KEY) surfaces here.
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
