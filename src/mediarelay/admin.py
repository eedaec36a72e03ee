"""Administrator helpers for provisioning the relay.

    mediarelay-admin auth-url --redirect-uri http://localhost:8080
    mediarelay-admin exchange-code --code <code> --redirect-uri http://localhost:8080
    mediarelay-admin discover-ids --folder-name "CMP GVNG"
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import httpx

from mediarelay.core.config import settings
from mediarelay.core.exceptions import MediaRelayException
from mediarelay.core.logging import setup_logging
from mediarelay.storage.base import GRAPH_API_BASE
from mediarelay.storage.credentials import CredentialBroker, build_authorize_url, exchange_code

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediarelay-admin",
        description="Provision the relay's OneDrive credentials and folder ids.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    auth_url = commands.add_parser("auth-url", help="Print the consent URL to open in a browser")
    auth_url.add_argument("--redirect-uri", required=True)

    exchange = commands.add_parser("exchange-code", help="Exchange an authorization code for a refresh token")
    exchange.add_argument("--code", required=True)
    exchange.add_argument("--redirect-uri", required=True)

    discover = commands.add_parser("discover-ids", help="Find the drive and folder ids of a folder in your drive")
    discover.add_argument("--folder-name", default="CMP GVNG")
    discover.add_argument(
        "--access-token",
        default=None,
        help="Graph access token (default: refresh one from AZURE_REFRESH_TOKEN)",
    )
    return parser


async def discover_ids(
    client: httpx.AsyncClient, folder_name: str, access_token: Optional[str] = None
) -> Optional[tuple[str, str]]:
    """Return ``(drive_id, folder_id)`` for *folder_name* in the drive root, or None."""
    if access_token is None:
        access_token = await CredentialBroker(client, settings).get_access_token()
    headers = {"Authorization": f"Bearer {access_token}"}

    drive = await client.get(f"{GRAPH_API_BASE}/me/drive", headers=headers)
    drive.raise_for_status()
    drive_id = drive.json()["id"]

    escaped = folder_name.replace("'", "''")
    search = await client.get(
        f"{GRAPH_API_BASE}/me/drive/root/children",
        headers=headers,
        params={"$filter": f"name eq '{escaped}'"},
    )
    search.raise_for_status()
    matches = search.json().get("value") or []
    if not matches:
        return None
    return drive_id, matches[0]["id"]


async def _run(args: argparse.Namespace) -> int:
    if args.command == "auth-url":
        print(build_authorize_url(args.redirect_uri))
        return 0

    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as client:
        if args.command == "exchange-code":
            tokens = await exchange_code(client, args.code, args.redirect_uri)
            print(f"AZURE_REFRESH_TOKEN={tokens.get('refresh_token', '')}")
            return 0

        found = await discover_ids(client, args.folder_name, args.access_token)
        if found is None:
            print(f'Folder "{args.folder_name}" not found in the root of your drive', file=sys.stderr)
            return 1
        drive_id, folder_id = found
        print(f"ONEDRIVE_DRIVE_ID={drive_id}")
        print(f"ONEDRIVE_FOLDER_ID={folder_id}")
        return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging()
    try:
        return asyncio.run(_run(args))
    except (MediaRelayException, httpx.HTTPError) as e:
        logger.error("Admin command failed", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
