# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Shared plumbing for the Gloo platform scripts.

- Loads credentials and the publisher id from the environment (optionally from `.env.local`).
- Configures logging the same way for every script.
- Builds the async httpx client and turns non-success responses into `RequestError`.
- Fetches an OAuth2 client-credentials access token.
- Reads the `exp` claim from an access token.
"""

import base64
import logging
import os
from typing import Any
from urllib.parse import quote

import httpx
import jwt
from dotenv import load_dotenv

log = logging.getLogger(__name__)

## constants --------------------------------------------------------
TOKEN_URL: str = 'https://platform.ai.gloo.com/oauth2/token'
TOKEN_SCOPE: str = 'api/access'
TOKEN_TIMEOUT_S: float = 10.0
ENV_FILE: str = '.env.local'
USER_AGENT: str = 'gloo-items-tools/1.0'


class RequestError(httpx.HTTPStatusError):
    """
    Raised for any non-success response from the Gloo platform.
    Carries the response `status` and the raw response `body` text.
    """

    def __init__(self, response: httpx.Response) -> None:
        self.status: int = response.status_code
        self.body: str = response.text
        message: str = f'Request to {response.request.url} failed with status {self.status}: {self.body}'
        super().__init__(message, request=response.request, response=response)


def configure_logging() -> None:
    """
    Sets up root logging from the LOG_LEVEL env var; keeps httpx quiet unless debugging.
    Called by: each script's main()
    """
    log_level_name: str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_name, logging.INFO)  # defaults to INFO for unknown names
    logging.basicConfig(
        level=log_level,
        format='[%(asctime)s] %(levelname)s [%(module)s-%(funcName)s()::%(lineno)d] %(message)s',
        datefmt='%d/%b/%Y %H:%M:%S',
    )
    if log_level <= logging.INFO:
        for noisy in ('httpx', 'httpcore'):
            lg = logging.getLogger(noisy)
            lg.setLevel(logging.WARNING)
            lg.propagate = False
    return


def load_env(path: str = ENV_FILE) -> None:
    """
    Loads `.env.local` into the environment; values already set in the environment win.
    """
    load_dotenv(path)


def require_env(name: str) -> str:
    value: str | None = os.environ.get(name)
    if not value:
        raise ValueError(f'Missing {name} environment variable.')
    return value


def load_credentials() -> dict[str, str]:
    return {
        'client_id': require_env('GLOO_CLIENT_ID'),
        'client_secret': require_env('GLOO_CLIENT_SECRET'),
    }


def load_publisher_id() -> str:
    return require_env('GLOO_PUBLISHER_ID')


def build_client() -> httpx.AsyncClient:
    """
    Builds the async client shared by all calls of one run.
    Per-call timeouts (token, upload, chat) override the default here.
    """
    headers: dict[str, str] = {'user-agent': USER_AGENT}
    timeout: httpx.Timeout = httpx.Timeout(30.0, connect=10.0)
    return httpx.AsyncClient(headers=headers, timeout=timeout)


def bearer_headers(access_token: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {access_token}'}


def check_response(response: httpx.Response) -> httpx.Response:
    """
    Raises RequestError for any non-2xx response; returns the response otherwise.
    """
    if not response.is_success:
        raise RequestError(response)
    return response


async def fetch_json(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Any:
    """
    Performs one request and returns the decoded JSON body.
    No retries; a failed call is the caller's problem.
    """
    log.debug(f'{method} ``{url}``')
    response: httpx.Response = await client.request(method, url, **kwargs)
    check_response(response)
    return response.json()


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """
    Builds the client-credentials Basic header; id and secret are form-urlencoded first (RFC 6749 2.3.1).
    """
    safe: str = "!~*'()"  # same unreserved set as JS encodeURIComponent
    pair: str = f'{quote(client_id, safe=safe)}:{quote(client_secret, safe=safe)}'
    encoded: str = base64.b64encode(pair.encode('utf-8')).decode('ascii')
    return f'Basic {encoded}'


async def get_access_token(client: httpx.AsyncClient, credentials: dict[str, str]) -> dict[str, Any]:
    """
    Requests a client-credentials token. Returns the raw token response, like:
    {'access_token': '...', 'token_type': 'Bearer', 'expires_in': 3600, 'scope': 'api/access'}
    """
    headers: dict[str, str] = {
        'Content-Type': 'application/x-www-form-urlencoded',
        'Authorization': basic_auth_header(credentials['client_id'], credentials['client_secret']),
    }
    data: dict[str, str] = {'grant_type': 'client_credentials', 'scope': TOKEN_SCOPE}
    return await fetch_json(client, 'POST', TOKEN_URL, headers=headers, data=data, timeout=TOKEN_TIMEOUT_S)


def require_access_token(token_response: dict[str, Any]) -> str:
    access_token: str | None = token_response.get('access_token')
    if not access_token:
        raise ValueError('Access token missing from token response.')
    return access_token


def describe_expiration(
    access_token: str,
    verification_key: str | bytes | None = None,
    algorithms: list[str] | None = None,
    **verify_options: Any,
) -> int | None:
    """
    Returns the `exp` claim from an access token, or None when it can't be read.

    Without a verification key the signature is not checked, so the value is informational only.
    With a key, `algorithms` (and any extra PyJWT options like `audience` or `issuer`)
    constrain which tokens are accepted.
    """
    try:
        if verification_key is not None:
            payload: dict[str, Any] = jwt.decode(
                access_token, verification_key, algorithms=algorithms or ['HS256'], **verify_options
            )
        else:
            payload = jwt.decode(access_token, options={'verify_signature': False})
    except jwt.PyJWTError as exc:
        log.debug(f'could not read token: {exc}')
        return None
    exp: object = payload.get('exp')
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        return None
    return int(exp)
