from __future__ import annotations

import argparse

from mytube.config import load_settings
from mytube.repositories.api_key_repository import ApiKeyRepository
from mytube.repositories.database import Database


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Manage bearer API keys that identify MyTube accounts.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Create a new API key for an account.")
    create_parser.add_argument(
        "--owner-id",
        required=True,
        help="Account identifier the key signs in as (for example: user_alice).",
    )
    create_parser.add_argument(
        "--label",
        default="default",
        help="Human-readable label for the key (for example: laptop).",
    )

    revoke_parser = subparsers.add_parser("revoke", help="Revoke an existing API key.")
    revoke_parser.add_argument(
        "--key-id",
        required=True,
        help="Key id (key_...).",
    )

    list_parser = subparsers.add_parser("list", help="List API keys.")
    list_parser.add_argument(
        "--all",
        action="store_true",
        help="Include revoked keys.",
    )

    return parser.parse_args(argv)


def _print_key_list(repository: ApiKeyRepository, *, include_revoked: bool) -> None:
    keys = repository.list_keys(include_revoked=include_revoked)
    if not keys:
        print("No API keys found.")
        return

    print("key_id\towner_id\tlabel\tcreated_at\trevoked_at\tlast_used_at")
    for key in keys:
        print(
            "\t".join(
                [
                    key.key_id,
                    key.owner_id,
                    key.label,
                    key.created_at,
                    key.revoked_at or "-",
                    key.last_used_at or "-",
                ]
            )
        )


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = load_settings()
    database = Database(settings.db_path)
    database.initialize()
    repository = ApiKeyRepository(database)

    if args.command == "create":
        record, token = repository.create_key(args.owner_id, args.label)
        print(f"Created API key: {record.key_id}")
        print(f"Owner: {record.owner_id}")
        print(f"Token (save now, only shown once): {token}")
        print(f"Set MYTUBE_API_TOKEN={token} for the CLI")
        return

    if args.command == "revoke":
        revoked = repository.revoke_key(args.key_id)
        if revoked:
            print(f"Revoked API key: {args.key_id}")
        else:
            print(f"No active API key found for: {args.key_id}")
        return

    if args.command == "list":
        _print_key_list(repository, include_revoked=args.all)
        return

    raise RuntimeError(f"Unhandled command: {args.command}")


if __name__ == "__main__":
    main()
