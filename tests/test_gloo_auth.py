import base64
import os
import unittest
from unittest import mock
from urllib.parse import parse_qs

import httpx
import jwt

from gloo_auth import (
    RequestError,
    basic_auth_header,
    describe_expiration,
    fetch_json,
    get_access_token,
    load_credentials,
    load_publisher_id,
    require_access_token,
)

SIGNING_KEY: str = 'test-signing-key-that-is-long-enough-for-hs256'


class TestEnvironmentConfig(unittest.TestCase):
    """
    Tests loading credentials and the publisher id from the environment.
    """

    def test_loads_credentials(self) -> None:
        """
        Checks that client id and secret are read from the environment.
        """
        env: dict[str, str] = {'GLOO_CLIENT_ID': 'id-1', 'GLOO_CLIENT_SECRET': 'secret-1'}
        with mock.patch.dict(os.environ, env, clear=True):
            computed: dict[str, str] = load_credentials()
        self.assertEqual(computed, {'client_id': 'id-1', 'client_secret': 'secret-1'})

    def test_missing_secret_raises(self) -> None:
        """
        Checks that a missing variable raises with its name in the message.
        """
        with mock.patch.dict(os.environ, {'GLOO_CLIENT_ID': 'id-1'}, clear=True):
            with self.assertRaises(ValueError) as ctx:
                load_credentials()
        self.assertEqual(str(ctx.exception), 'Missing GLOO_CLIENT_SECRET environment variable.')

    def test_empty_publisher_id_counts_as_missing(self) -> None:
        """
        Checks that an empty publisher id is treated as missing.
        """
        with mock.patch.dict(os.environ, {'GLOO_PUBLISHER_ID': ''}, clear=True):
            with self.assertRaises(ValueError):
                load_publisher_id()


class TestAccessToken(unittest.IsolatedAsyncioTestCase):
    """
    Tests the client-credentials token request.
    """

    async def test_posts_form_with_basic_auth(self) -> None:
        """
        Checks the token request form body and the urlencoded Basic header.
        """
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'access_token': 'tok', 'token_type': 'Bearer', 'expires_in': 3600})

        credentials: dict[str, str] = {'client_id': 'my id', 'client_secret': 's/ecret'}
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            computed: dict = await get_access_token(client, credentials)
        self.assertEqual(computed['access_token'], 'tok')
        request: httpx.Request = seen[0]
        self.assertEqual(request.method, 'POST')
        self.assertEqual(str(request.url), 'https://platform.ai.gloo.com/oauth2/token')
        self.assertEqual(
            parse_qs(request.content.decode('utf-8')),
            {'grant_type': ['client_credentials'], 'scope': ['api/access']},
        )
        expected_auth: str = 'Basic ' + base64.b64encode(b'my%20id:s%2Fecret').decode('ascii')
        self.assertEqual(request.headers['Authorization'], expected_auth)

    async def test_failed_token_request_raises(self) -> None:
        """
        Checks that a rejected token request raises RequestError with status and body.
        """
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text='invalid_client'))
        async with httpx.AsyncClient(transport=transport) as client:
            with self.assertRaises(RequestError) as ctx:
                await get_access_token(client, {'client_id': 'a', 'client_secret': 'b'})
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.body, 'invalid_client')
        self.assertEqual(
            str(ctx.exception), 'Request to https://platform.ai.gloo.com/oauth2/token failed with status 401: invalid_client'
        )

    async def test_fetch_json_is_an_httpx_status_error(self) -> None:
        """
        Checks that RequestError can be caught as httpx.HTTPStatusError.
        """
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text='unavailable'))
        async with httpx.AsyncClient(transport=transport) as client:
            with self.assertRaises(httpx.HTTPStatusError):
                await fetch_json(client, 'GET', 'https://example.org/thing')

    def test_basic_auth_header_keeps_unreserved_marks(self) -> None:
        """
        Checks that the characters encodeURIComponent leaves alone are not escaped.
        """
        computed: str = basic_auth_header("a!b*c'(d)~", 'x')
        expected: str = 'Basic ' + base64.b64encode(b"a!b*c'(d)~:x").decode('ascii')
        self.assertEqual(computed, expected)

    def test_require_access_token(self) -> None:
        """
        Checks that a token response without access_token raises ValueError.
        """
        self.assertEqual(require_access_token({'access_token': 'tok'}), 'tok')
        with self.assertRaises(ValueError):
            require_access_token({'token_type': 'Bearer'})


class TestDescribeExpiration(unittest.TestCase):
    """
    Tests reading the `exp` claim.
    """

    def test_reads_exp_without_verification(self) -> None:
        """
        Checks that exp is read, even if past, when no key is given.
        """
        token: str = jwt.encode({'exp': 1700000000, 'sub': 'client'}, SIGNING_KEY, algorithm='HS256')
        self.assertEqual(describe_expiration(token), 1700000000)

    def test_missing_exp_returns_none(self) -> None:
        """
        Checks that a token without exp gives None.
        """
        token: str = jwt.encode({'sub': 'client'}, SIGNING_KEY, algorithm='HS256')
        self.assertIsNone(describe_expiration(token))

    def test_garbage_token_returns_none(self) -> None:
        """
        Checks that a non-JWT string gives None.
        """
        self.assertIsNone(describe_expiration('not-a-jwt'))

    def test_verified_with_matching_key(self) -> None:
        """
        Checks that exp is returned when the signature verifies.
        """
        token: str = jwt.encode({'exp': 4102444800}, SIGNING_KEY, algorithm='HS256')
        self.assertEqual(describe_expiration(token, SIGNING_KEY, algorithms=['HS256']), 4102444800)

    def test_verified_with_wrong_key_returns_none(self) -> None:
        """
        Checks that a bad signature gives None.
        """
        token: str = jwt.encode({'exp': 4102444800}, SIGNING_KEY, algorithm='HS256')
        self.assertIsNone(describe_expiration(token, 'another-key-that-is-also-long-enough-to-use', algorithms=['HS256']))


if __name__ == '__main__':
    unittest.main()
