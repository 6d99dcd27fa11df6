# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "humanize",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Fetches an access token and prints its claims, then checks the token's organization.

The signature is not verified; this is for eyeballing what the platform issued.

Usage:
  uv run ./check_token.py --expected-org-id 78aa8edb-...

Args:
  --expected-org-id (optional) -- defaults to GLOO_ORG_ID; the org check is skipped when neither is set
"""

import argparse
import asyncio
import json
import os
import sys
import time
from datetime import UTC, datetime, timedelta
from typing import Any

import humanize
import jwt

from gloo_auth import build_client, configure_logging, get_access_token, load_credentials, load_env, require_access_token

STANDARD_CLAIMS: frozenset[str] = frozenset({'client_id', 'sub', 'exp', 'iat', 'scope', 'iss', 'aud', 'jti'})


def decode_claims(access_token: str) -> dict[str, Any]:
    try:
        return jwt.decode(access_token, options={'verify_signature': False})
    except jwt.PyJWTError as exc:
        raise ValueError('Failed to decode JWT token.') from exc


def format_timestamp(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=UTC).isoformat()


def format_time_remaining(epoch_seconds: int, now: float | None = None) -> str:
    """
    Returns 'EXPIRED' or a human phrase like 'valid for 12 minutes'.
    """
    now = time.time() if now is None else now
    remaining: float = epoch_seconds - now
    if remaining <= 0:
        return 'EXPIRED'
    return f'valid for {humanize.naturaldelta(timedelta(seconds=remaining))}'


def describe_claims(claims: dict[str, Any], now: float | None = None) -> list[str]:
    """
    Builds the 'Token Claims' report lines; non-standard claims are listed after the known ones.
    """
    lines: list[str] = [
        f'  client_id: {claims.get("client_id", "(not present)")}',
        f'  sub: {claims.get("sub", "(not present)")}',
    ]
    if claims.get('exp'):
        lines.append(f'  exp: {format_timestamp(claims["exp"])} ({format_time_remaining(claims["exp"], now)})')
    if claims.get('iat'):
        lines.append(f'  iat: {format_timestamp(claims["iat"])}')
    if claims.get('scope'):
        lines.append(f'  scope: {claims["scope"]}')
    for key, value in claims.items():
        if key not in STANDARD_CLAIMS:
            lines.append(f'  {key}: {json.dumps(value)}')
    return lines


def check_organization(claims: dict[str, Any], expected_org_id: str | None) -> list[str]:
    org_id: object = claims.get('org_id')
    lines: list[str] = [f'  org_id: {org_id or "(not present)"}']
    if not expected_org_id:
        lines.append('  (no expected org id configured; skipping check)')
    elif org_id == expected_org_id:
        lines.append('  OK: org_id matches the expected organization.')
    else:
        lines.append('  WARNING: org_id does not match the expected organization!')
        lines.append(f'  Expected: {expected_org_id}')
    return lines


async def fetch_token() -> str:
    credentials: dict[str, str] = load_credentials()
    print('Credentials:')
    print(f'  Client ID: {credentials["client_id"]}\n')
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
    return require_access_token(token_response)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Print the claims of a Gloo access token.')
    parser.add_argument('--expected-org-id', default=None, help='Organization id the token should carry')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    load_env()
    args: argparse.Namespace = parse_args(argv)
    expected_org_id: str | None = args.expected_org_id or os.environ.get('GLOO_ORG_ID')
    print('=== JWT Token Validation ===\n')
    access_token: str = asyncio.run(fetch_token())
    claims: dict[str, Any] = decode_claims(access_token)
    print('Token Claims:')
    print('\n'.join(describe_claims(claims)))
    print('\nOrganization Check:')
    print('\n'.join(check_organization(claims, expected_org_id)))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error validating JWT: {exc}')
