# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Lists the items owned by a publisher.

Usage:
  uv run ./list_items.py
  uv run ./list_items.py --publisher-id 4f0c...

Args:
  --publisher-id (optional) -- defaults to GLOO_PUBLISHER_ID
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import httpx

from gloo_auth import (
    bearer_headers,
    build_client,
    configure_logging,
    fetch_json,
    get_access_token,
    load_credentials,
    load_env,
    load_publisher_id,
    require_access_token,
)

log = logging.getLogger(__name__)

ITEMS_BASE_URL: str = 'https://platform.ai.gloo.com/engine/v2/publisher'


def items_url(publisher_id: str) -> str:
    return f'{ITEMS_BASE_URL}/{publisher_id}/items'


async def get_items(client: httpx.AsyncClient, access_token: str, publisher_id: str) -> list[dict[str, Any]]:
    """
    Fetches the publisher's full item list in one call.
    Each item looks like: {'item_id': 'abc-123', 'status': 'active', 'item_title': '...', 'filename': '...'}
    Called by: export_items_metadata.fetch_all_metadata(), run()
    """
    return await fetch_json(client, 'GET', items_url(publisher_id), headers=bearer_headers(access_token))


async def run(publisher_id: str) -> None:
    credentials: dict[str, str] = load_credentials()
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
        access_token: str = require_access_token(token_response)
        print(f'Fetching items for publisher "{publisher_id}"...')
        items: list[dict[str, Any]] = await get_items(client, access_token, publisher_id)
    print(f'Found {len(items)} item(s)')
    print(json.dumps(items, indent=2, ensure_ascii=False))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='List the items owned by a Gloo publisher.')
    parser.add_argument('--publisher-id', default=None, help='Publisher id; defaults to GLOO_PUBLISHER_ID')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    load_env()
    args: argparse.Namespace = parse_args(argv)
    publisher_id: str = args.publisher_id or load_publisher_id()
    asyncio.run(run(publisher_id))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error fetching items: {exc}')
