#!/usr/bin/env python3
"""
Alliance portal -- server and account administration commands.

Usage:
  python main.py serve [--host 0.0.0.0] [--port 3000] [--reload]
  python main.py create-admin --country-code +1 --phone 5551234 --password secret
  python main.py promote --phone 5551234
  python main.py promote --phone 5551234 --revoke
  python main.py set-password --phone 5551234 --password new-secret

Environment variables:
  DATABASE_URL     Required. SQLAlchemy URL, e.g. sqlite:///portal.db
  SESSION_SECRET   Signs the session cookie. An insecure fallback is used
                   (with a warning) when unset.
"""

import argparse
import logging
import sys

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from auth.store import UserStore
from core.config import Settings, get_settings

logger = logging.getLogger("alliance.cli")


def _load_settings() -> Settings:
    """Return settings or exit the process with a logged diagnostic."""
    try:
        return get_settings()
    except ValidationError as exc:
        logger.critical("FATAL ERROR: invalid configuration -- %s", exc)
        sys.exit(1)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = _load_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _create_admin(args: argparse.Namespace) -> int:
    store = UserStore(_load_settings().database_url)
    try:
        user_id = store.create_user(args.country_code, args.phone, args.password, is_admin=True)
    except IntegrityError:
        print(f"  [!] Phone number {args.phone} is already registered. Use 'promote' instead.")
        return 1
    finally:
        store.close()
    print(f"  Created admin user {user_id} ({args.country_code} {args.phone}).")
    return 0


def _promote(args: argparse.Namespace) -> int:
    store = UserStore(_load_settings().database_url)
    try:
        user = store.get_by_phone(args.phone)
        if user is None:
            print(f"  [!] No user with phone number {args.phone}.")
            return 1
        store.set_admin(user.id, not args.revoke)
    finally:
        store.close()
    state = "revoked from" if args.revoke else "granted to"
    print(f"  Admin access {state} user {user.id}.")
    return 0


def _set_password(args: argparse.Namespace) -> int:
    store = UserStore(_load_settings().database_url)
    try:
        user = store.get_by_phone(args.phone)
        if user is None:
            print(f"  [!] No user with phone number {args.phone}.")
            return 1
        store.update_password(user.id, args.password)
    finally:
        store.close()
    print(f"  Password updated for user {user.id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Alliance portal server and account administration.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-admin", help="Create a new administrator account")
    create.add_argument("--country-code", required=True)
    create.add_argument("--phone", required=True)
    create.add_argument("--password", required=True)
    create.set_defaults(func=_create_admin)

    promote = sub.add_parser("promote", help="Grant (or revoke) admin access for an existing user")
    promote.add_argument("--phone", required=True)
    promote.add_argument("--revoke", action="store_true")
    promote.set_defaults(func=_promote)

    set_password = sub.add_parser("set-password", help="Replace a user's password")
    set_password.add_argument("--phone", required=True)
    set_password.add_argument("--password", required=True)
    set_password.set_defaults(func=_set_password)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
