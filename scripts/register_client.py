"""Register an OAuth client application from the command line.

The client secret is printed exactly once; only its salted hash is stored.

Example usages::

    python -m scripts.register_client --name "Photo Printer" \
        --redirect-uri https://printer.example.com/callback

    # Restrict the client to the authorization code and refresh grants.
    python -m scripts.register_client --name "Photo Printer" \
        --redirect-uri https://printer.example.com/callback \
        --grant-type authorization_code --grant-type refresh_token \
        --db-path /var/lib/oauth/provider.db
"""

from __future__ import annotations

import argparse
import sys

from pydantic import ValidationError

from oauth_provider.clients import SQLiteStore
from oauth_provider.core.config import StorageSettings
from oauth_provider.services import ClientRegistry

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Register a client application with the OAuth provider."
    )
    parser.add_argument("--name", required=True, help="Human readable client name.")
    parser.add_argument(
        "--redirect-uri",
        required=True,
        help="Registered redirection endpoint of the client.",
    )
    parser.add_argument(
        "--grant-type",
        action="append",
        default=[],
        dest="grant_types",
        help=(
            "Grant type the client may use; repeat for several. "
            "Omit to allow every grant type."
        ),
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database path (default: OAUTH_DB_PATH or data/oauth_provider.db).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        db_path = args.db_path or StorageSettings().db_path
    except ValidationError as exc:
        print(
            "Settings validation failed:\n" f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    registry = ClientRegistry(SQLiteStore(db_path))
    try:
        registered = registry.register(
            name=args.name,
            redirect_uri=args.redirect_uri,
            grant_types=args.grant_types,
        )
    except ValueError as exc:
        print(f"Invalid client registration: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    print(f"client_id: {registered.client.client_id}")
    print(f"client_secret: {registered.client_secret}")
    print("Store the secret now; it cannot be shown again.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
