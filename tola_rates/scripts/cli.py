"""Command line entry point for scheduled ticks and ad-hoc queries."""

from __future__ import annotations

import argparse
import json
from typing import Any, Sequence

from tola_rates import TolaRates
from tola_rates.errors import ServiceUnavailable
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["parse_args", "main"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tola-rates", description=__doc__)
    parser.add_argument(
        "--db",
        dest="db_url",
        default=None,
        help="Database DSN (overrides TOLA_RATES_DB_URL)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("prices", help="Print the latest prices (live or stale)")

    history = sub.add_parser("history", help="Print the rolling history")
    history.add_argument("--days", type=int, default=7, help="Number of newest entries")

    tick = sub.add_parser("tick", help="Refresh history/cache and notify on change (for cron)")
    tick.add_argument(
        "--no-notify",
        dest="notify",
        action="store_false",
        help="Only refresh history and cache",
    )

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3003)
    return parser.parse_args(argv)


def _dump(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    rates = TolaRates.from_env(db_config=args.db_url) if args.db_url else TolaRates.from_env()
    try:
        if args.command == "prices":
            try:
                _dump(rates.prices())
            except ServiceUnavailable as exc:
                _dump({"status": "error", "message": exc.message})
                return 1
        elif args.command == "history":
            _dump(rates.history(args.days))
        elif args.command == "tick":
            result = rates.tick(notify=args.notify)
            _dump(result)
            return 1 if result.get("status") == "error" else 0
        elif args.command == "serve":  # pragma: no cover - blocking server
            import uvicorn

            from tola_rates.api.server import create_app

            LOGGER.info("Serving tola_rates on %s:%s", args.host, args.port)
            uvicorn.run(create_app(rates), host=args.host, port=args.port)
    finally:
        rates.close()
    return 0


if __name__ == "__main__":  # pragma: no cover - thin wrapper
    raise SystemExit(main())
