# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Sends one prompt to the chat-completions endpoint and prints the raw response.

Usage:
  uv run ./chat_completion.py "How do I discover my purpose?"
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
    describe_expiration,
    fetch_json,
    get_access_token,
    load_credentials,
    load_env,
    require_access_token,
)

CHAT_URL: str = 'https://platform.ai.gloo.com/ai/v1/chat/completions'
MODEL: str = 'meta.llama3-70b-instruct-v1:0'
SYSTEM_PROMPT: str = 'You are a human-flourishing assistant.'
DEFAULT_PROMPT: str = 'How do I discover my purpose?'
CHAT_TIMEOUT_S: float = 30.0


def build_messages(prompt: str) -> list[dict[str, str]]:
    return [
        {'role': 'system', 'content': SYSTEM_PROMPT},
        {'role': 'user', 'content': prompt},
    ]


async def get_chat_completion(client: httpx.AsyncClient, access_token: str, prompt: str) -> dict[str, Any]:
    return await fetch_json(
        client,
        'POST',
        CHAT_URL,
        headers=bearer_headers(access_token),
        json={'model': MODEL, 'messages': build_messages(prompt)},
        timeout=CHAT_TIMEOUT_S,
    )


async def run(prompt: str) -> None:
    credentials: dict[str, str] = load_credentials()
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
        access_token: str = require_access_token(token_response)
        expiration: int | None = describe_expiration(access_token)
        shown: int | str = expiration if expiration is not None else 'unknown (missing exp)'
        print(f'Token expires at (unix seconds, not verified): {shown}')
        completion: dict[str, Any] = await get_chat_completion(client, access_token, prompt)
    print(json.dumps(completion, indent=2, ensure_ascii=False))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Send a prompt to Gloo chat completions.')
    parser.add_argument('prompt', nargs='?', default=DEFAULT_PROMPT)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    load_env()
    args: argparse.Namespace = parse_args(argv)
    asyncio.run(run(args.prompt))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error running chat example: {exc}')
