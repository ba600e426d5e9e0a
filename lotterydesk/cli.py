from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from .config import load_settings
from .errors import LotteryError


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def _print(payload) -> None:
    print(json.dumps(payload, indent=2))


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.env_file)
    configure_logging(args.verbose)
    logger = logging.getLogger("lotterydesk.cli")

    # Imported late so the database engine picks up --env-file.
    from .db import engine
    from .models import Base
    from .routes.tickets import get_booking_service, get_round_repo
    from .services.views import compose_view

    Base.metadata.create_all(engine)
    rounds = get_round_repo()

    try:
        if args.command == "create-round":
            lottery_no = rounds.create_round(args.tickets)
            _print({"message": f"Successfully created lottery {lottery_no}", "lotteryNo": lottery_no})
        elif args.command == "availability":
            _print(rounds.get_latest_availability())
        elif args.command == "view":
            _print(compose_view(args.lottery).to_dict())
        elif args.command == "rounds":
            _print(rounds.list_rounds(limit=args.limit))
        elif args.command == "book":
            profile = {"email": args.email, "fullName": args.name}
            if args.phone:
                profile["phone"] = args.phone
            service = get_booking_service()
            if args.sale:
                result = service.sell_tickets(args.lottery, args.numbers, profile)
            else:
                result = service.book_tickets(args.lottery, args.numbers, profile)
            _print(result.to_dict())
        elif args.command == "serve":
            from .app import create_app

            app = create_app()
            app.run(host=args.host, port=args.port, debug=settings.flask.debug)
    except LotteryError as exc:
        logger.error("%s: %s", exc.kind, exc.message)
        return 1
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lottery ticket booking desk")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with settings")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-round", help="Create the next lottery round.")
    create.add_argument("tickets", type=str, help="Number of tickets in the round.")

    commands.add_parser("availability", help="Show unsold tickets of the latest round.")

    view = commands.add_parser("view", help="List every ticket of a round with its owner.")
    view.add_argument("--lottery", type=int, default=None, help="Round number (default latest).")

    listing = commands.add_parser("rounds", help="Summarise rounds, newest first.")
    listing.add_argument("--limit", type=int, default=None)

    book = commands.add_parser("book", help="Book ticket numbers for a user.")
    book.add_argument("lottery", type=int)
    book.add_argument("numbers", nargs="+", help="Ticket numbers, e.g. 001 002")
    book.add_argument("--email", required=True)
    book.add_argument("--name", required=True)
    book.add_argument("--phone", default=None)
    book.add_argument("--sale", action="store_true", help="Record a final sale instead of a booking.")

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        print("Stopped by user.")


if __name__ == "__main__":
    main()
