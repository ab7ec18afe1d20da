#!/usr/bin/env python3
"""
RecipeHub -- recipes CRUD and news proxy behind session-based access control.

Usage:
  python main.py create-user cook@example.com
  python main.py create-user cook@example.com --password 'correct horse battery'
  python main.py set-password cook@example.com
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload

Environment variables:
  SECRET_KEY     Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL   SQLAlchemy URL. Defaults to sqlite:///recipehub.db.
  NEWS_API_KEY   Optional. Without it the news pages report the provider as unavailable.
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

_MIN_PASSWORD_LENGTH = 8


def _read_password(supplied: Optional[str]) -> Optional[str]:
    """Return the --password value or prompt twice for one.

    Returns None (after printing why) when the prompts differ or the password
    is too short, so callers can exit non-zero without a traceback.
    """
    if supplied is not None:
        password = supplied
    else:
        password = getpass.getpass("  Password: ")
        confirm = getpass.getpass("  Confirm password: ")
        if password != confirm:
            print("  [!] Passwords do not match.")
            return None
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return None
    return password


def create_user(email: str, password: Optional[str]) -> int:
    """Seed a user account. Returns a process exit code."""
    from auth.models import User
    from auth.store import UserStore, normalize_email
    from auth.tokens import hash_password

    email = normalize_email(email)
    if "@" not in email:
        print(f"  [!] '{email}' doesn't look like an email address.")
        return 2
    password = _read_password(password)
    if password is None:
        return 2

    store = UserStore()
    try:
        user_id = store.create_user(User(email=email, hashed_password=hash_password(password)))
    except IntegrityError:
        print(f"  [!] A user with email '{email}' already exists. Use set-password to change it.")
        return 1
    finally:
        store.close()
    print(f"  Created user {email} (id {user_id}).")
    return 0


def set_password(email: str, password: Optional[str]) -> int:
    """Rotate a user's password. Every existing session for the user is revoked."""
    from auth.store import UserStore
    from auth.tokens import hash_password

    store = UserStore()
    try:
        user = store.get_by_email(email)
        if user is None:
            print(f"  [!] No user with email '{email}'.")
            return 1
        password = _read_password(password)
        if password is None:
            return 2
        store.set_password(user.id, hash_password(password))
    finally:
        store.close()
    print(f"  Password updated for {user.email}. Existing sessions were signed out.")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="recipehub",
        description="Recipes CRUD and news proxy with session-based access control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user cook@example.com
  python main.py set-password cook@example.com
  DEBUG=true python main.py serve --reload
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_create = sub.add_parser("create-user", help="Create a user account")
    p_create.add_argument("email", help="Email address used to sign in")
    p_create.add_argument("--password", default=None, help="Password (prompted for when omitted)")

    p_passwd = sub.add_parser("set-password", help="Change a user's password and revoke their sessions")
    p_passwd.add_argument("email", help="Email address of the existing user")
    p_passwd.add_argument("--password", default=None, help="New password (prompted for when omitted)")

    p_serve = sub.add_parser("serve", help="Run the web server (uvicorn)")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    p_serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    p_serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    args = parser.parse_args(argv)

    if args.command == "create-user":
        return create_user(args.email, args.password)
    if args.command == "set-password":
        return set_password(args.email, args.password)
    if args.command == "serve":
        return serve(args.host, args.port, args.reload)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
