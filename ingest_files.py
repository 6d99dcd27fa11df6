# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Uploads files to the publisher's ingestion queue.

Usage:
  uv run ./ingest_files.py ./test-files/sample1.txt ./test-files/sample2.txt

Args:
  paths (one or more, required)
"""

import argparse
import asyncio
import sys
from pathlib import Path
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

INGESTION_URL: str = 'https://api.gloo.ai/ingestion/v2/files'
UPLOAD_TIMEOUT_S: float = 60.0


async def upload_files(
    client: httpx.AsyncClient, access_token: str, publisher_id: str, files: list[tuple[str, bytes | str]]
) -> dict[str, Any]:
    """
    Uploads `(name, content)` pairs as one multipart request.
    Returns the ingestion summary, like:
    {'success': True, 'message': '...', 'ingesting': ['a.txt'], 'duplicates': []}
    """
    parts: list[tuple[str, tuple[str, bytes | str, str]]] = [
        ('files', (name, content, 'text/plain')) for name, content in files
    ]
    return await fetch_json(
        client,
        'POST',
        INGESTION_URL,
        headers=bearer_headers(access_token),
        data={'publisher_id': publisher_id},
        files=parts,
        timeout=UPLOAD_TIMEOUT_S,
    )


async def upload_files_from_paths(
    client: httpx.AsyncClient, access_token: str, publisher_id: str, paths: list[Path]
) -> dict[str, Any]:
    files: list[tuple[str, bytes | str]] = [(path.name, path.read_bytes()) for path in paths]
    return await upload_files(client, access_token, publisher_id, files)


def print_file_list(label: str, names: list[str]) -> None:
    print(f'  {label} ({len(names)}):')
    if not names:
        print('    (none)')
    for name in names:
        print(f'    - {name}')


async def run(paths: list[Path]) -> None:
    credentials: dict[str, str] = load_credentials()
    publisher_id: str = load_publisher_id()
    print('Gloo AI Ingestion v2 - File Upload')
    print(f'Publisher: {publisher_id}\n')
    print(f'Uploading {len(paths)} file(s)...\n')
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
        access_token: str = require_access_token(token_response)
        result: dict[str, Any] = await upload_files_from_paths(client, access_token, publisher_id, paths)
    print('Response:')
    print(f'  Success: {result.get("success")}')
    print(f'  Message: {result.get("message")}\n')
    print_file_list('Ingesting', result.get('ingesting') or [])
    print()
    print_file_list('Duplicates', result.get('duplicates') or [])


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Upload files for ingestion into a Gloo publisher.')
    parser.add_argument('paths', nargs='+', type=Path, help='Files to upload')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    load_env()
    args: argparse.Namespace = parse_args(argv)
    asyncio.run(run(args.paths))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error during ingestion: {exc}')
