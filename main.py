#!/usr/bin/env python3
"""
Keeper -- JWT-secured CRUD API for owned items. Administrative CLI.

Usage:
  python main.py create-user --email ada@example.com --name "Ada Lovelace"
  python main.py create-user --email root@example.com --name Root --admin
  python main.py set-role --email ada@example.com --role ADMIN
  python main.py list-users
  python main.py serve --host 127.0.0.1 --port 8000

The first ADMIN can only be made here: self-registration over HTTP always
creates USER accounts.

Passwords are read with an interactive prompt unless --password is given.
Prefer the prompt -- command-line arguments end up in shell history.

Environment variables: see core/config.py (DATABASE_URL, SECRET_KEY, DEBUG, ...).
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.models import Role
from auth.passwords import PasswordHasher
from auth.store import AccountStore
from core.config import get_settings
from core.errors import DuplicateEmailError, NotFoundError, ValidationError
from core.validation import CredentialPolicy


def _open_store() -> AccountStore:
    settings = get_settings()
    return AccountStore(
        settings.database_url,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        CredentialPolicy.from_settings(settings),
    )


def _read_password(given: Optional[str]) -> str:
    if given is not None:
        return given
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        raise SystemExit(1)
    return first


def cmd_create_user(args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    role = Role.ADMIN if args.admin else Role.USER
    store = _open_store()
    try:
        account_id = store.register(args.email, args.name, password, role=role)
    except ValidationError as exc:
        for err in exc.errors:
            print(f"  [!] {err.field}: {err.message}")
        return 1
    except DuplicateEmailError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()
    print(f"  Created {role.value} account {args.email.strip().lower()} (id={account_id})")
    return 0


def cmd_set_role(args: argparse.Namespace) -> int:
    store = _open_store()
    try:
        account = store.find_by_email(args.email)
        if account is None:
            print(f"  [!] No account with email {args.email!r}.")
            return 1
        try:
            store.set_role(account.id, Role(args.role))
        except NotFoundError as exc:
            print(f"  [!] {exc.message}")
            return 1
    finally:
        store.close()
    print(f"  {account.email} is now {args.role}")
    return 0


def cmd_list_users(args: argparse.Namespace) -> int:
    store = _open_store()
    try:
        accounts = store.list_accounts()
    finally:
        store.close()
    if not accounts:
        print("  No accounts.")
        return 0
    for a in accounts:
        print(f"  {a.id:>5}  {a.role.value:<5}  {a.email:<40} {a.display_name}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keeper administrative CLI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account")
    create.add_argument("--email", required=True)
    create.add_argument("--name", required=True, help="Display name")
    create.add_argument("--password", help="Password (prompted if omitted)")
    create.add_argument("--admin", action="store_true", help="Create an ADMIN instead of a USER")
    create.set_defaults(func=cmd_create_user)

    set_role = sub.add_parser("set-role", help="Change an account's role")
    set_role.add_argument("--email", required=True)
    set_role.add_argument("--role", required=True, choices=[r.value for r in Role])
    set_role.set_defaults(func=cmd_set_role)

    list_users = sub.add_parser("list-users", help="List all accounts")
    list_users.set_defaults(func=cmd_list_users)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
