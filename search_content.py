# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Runs a semantic search against a tenant's published content.

Usage:
  uv run ./search_content.py "leadership" CareyNieuwhof --limit 5

Args:
  query (optional) -- defaults to "leadership"
  tenant (optional) -- defaults to "CareyNieuwhof"
  --limit (optional) -- max results; omitted from the request when not positive
"""

import argparse
import asyncio
import json
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
    require_access_token,
)

SEARCH_URL: str = 'https://platform.ai.gloo.com/ai/data/v1/search'
COLLECTION: str = 'GlooProd'
DEFAULT_CERTAINTY: float = 0.5
DEFAULT_QUERY: str = 'leadership'
DEFAULT_TENANT: str = 'CareyNieuwhof'
DEFAULT_LIMIT: int = 5


def build_search_payload(query: str, tenant: str, limit: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        'query': query,
        'collection': COLLECTION,
        'tenant': tenant,
        'certainty': DEFAULT_CERTAINTY,
    }
    if isinstance(limit, int) and limit > 0:
        payload['limit'] = limit
    return payload


async def search(
    client: httpx.AsyncClient, access_token: str, query: str, tenant: str, limit: int | None = None
) -> dict[str, Any]:
    """
    Returns the raw search response, like:
    {'data': [{'uuid': '...', 'metadata': {'certainty': 0.7, 'score': 0.4}, 'properties': {'title': '...'}}], 'intent': 1}
    """
    return await fetch_json(
        client,
        'POST',
        SEARCH_URL,
        headers=bearer_headers(access_token),
        json=build_search_payload(query, tenant, limit),
    )


async def run(query: str, tenant: str, limit: int) -> None:
    credentials: dict[str, str] = load_credentials()
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
        access_token: str = require_access_token(token_response)
        print(f'Searching for "{query}" in tenant "{tenant}"...')
        results: dict[str, Any] = await search(client, access_token, query, tenant, limit)
    print(f'Found {len(results.get("data", []))} results (intent: {results.get("intent")})')
    print(json.dumps(results, indent=2, ensure_ascii=False))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Search Gloo content for a tenant.')
    parser.add_argument('query', nargs='?', default=DEFAULT_QUERY)
    parser.add_argument('tenant', nargs='?', default=DEFAULT_TENANT)
    parser.add_argument('--limit', type=int, default=DEFAULT_LIMIT, metavar='INTEGER')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    load_env()
    args: argparse.Namespace = parse_args(argv)
    asyncio.run(run(args.query, args.tenant, args.limit))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error running search: {exc}')
