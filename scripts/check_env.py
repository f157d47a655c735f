"""Check that a deployment's configuration is complete before going live.

Loads ``AppSettings`` from the given ``.env`` file, reporting missing or
malformed entries, then opens the configured verification store so a bad
``VERIFICATION_STORE_URI`` is caught before the first user hits the callback.

Example::

    python -m scripts.check_env --env-file /opt/verify/.env
    python -m scripts.check_env --env-file .env --skip-store
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from app.clients.connection import get_connection
from app.core.config import AppSettings, _load_env_file
from app.core.errors import PersistenceError

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_STORE_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate required settings and verification store access."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    parser.add_argument(
        "--skip-store",
        action="store_true",
        help="Only validate settings; do not open the verification store.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    _load_env_file(str(env_file))
    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    if settings.oauth.signed_state and not settings.discord.client_secret:
        print("Signed OAuth state requires DISCORD_CLIENT_SECRET.", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    if not args.skip_store:
        try:
            get_connection(settings.store.uri)
        except PersistenceError as exc:
            cause = f" ({exc.__cause__})" if exc.__cause__ else ""
            print(f"Verification store unavailable: {exc}{cause}", file=sys.stderr)
            return EXIT_STORE_ERROR

    print(f"Configuration OK for environment '{settings.environment}'.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
