"""Manage per-guild verification settings.

Server administrators decide which role, if any, a user receives after
verifying. The callback only reads this configuration.

Example usages::

    python -m scripts.guild_config show 123456789012345678
    python -m scripts.guild_config set-role 123456789012345678 987654321098765432
    python -m scripts.guild_config clear-role 123456789012345678
"""

from __future__ import annotations

import argparse
import sys

from app.clients.connection import get_connection
from app.core.config import get_settings
from app.core.errors import PersistenceError
from app.models.verification import GuildConfig
from app.services.verification_records import GuildConfigStore

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_STORE_ERROR = 4


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show or change a guild's verified role.")
    parser.add_argument(
        "--store-uri",
        default=None,
        help="Verification store URI (default: VERIFICATION_STORE_URI from settings).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print the stored configuration.")
    show_parser.add_argument("guild_id")

    set_parser = subparsers.add_parser("set-role", help="Grant this role on verification.")
    set_parser.add_argument("guild_id")
    set_parser.add_argument("role_id")

    clear_parser = subparsers.add_parser("clear-role", help="Stop granting a role.")
    clear_parser.add_argument("guild_id")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    store_uri = args.store_uri or get_settings().store.uri
    store = GuildConfigStore(lambda: get_connection(store_uri))

    try:
        if args.command == "show":
            config = store.get(args.guild_id)
            if config is None:
                print(f"No configuration stored for guild {args.guild_id}.")
                return EXIT_NOT_FOUND
            print(f"guild_id={config.guild_id} verified_role_id={config.verified_role_id or '-'}")
            return EXIT_OK

        role_id = args.role_id if args.command == "set-role" else None
        store.save(GuildConfig(guild_id=args.guild_id, verified_role_id=role_id))
    except PersistenceError as exc:
        print(f"Verification store unavailable: {exc}", file=sys.stderr)
        return EXIT_STORE_ERROR

    print(f"Updated guild {args.guild_id}: verified_role_id={role_id or '-'}")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
