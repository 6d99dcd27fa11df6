import unittest

import httpx

from gloo_auth import RequestError
from list_items import get_items


class TestGetItems(unittest.IsolatedAsyncioTestCase):
    """
    Tests the publisher item listing call.
    """

    async def test_sends_get_with_bearer_token(self) -> None:
        """
        Checks the listing URL, method, and bearer header.
        """
        seen: list[httpx.Request] = []
        listing: list[dict] = [{'item_id': 'abc-123', 'status': 'active', 'item_title': 'Test Item', 'filename': 'test.txt'}]

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=listing)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            computed: list[dict] = await get_items(client, 'token123', 'publisher-456')
        self.assertEqual(computed, listing)
        self.assertEqual(str(seen[0].url), 'https://platform.ai.gloo.com/engine/v2/publisher/publisher-456/items')
        self.assertEqual(seen[0].method, 'GET')
        self.assertEqual(seen[0].headers['Authorization'], 'Bearer token123')

    async def test_error_status_raises(self) -> None:
        """
        Checks that a failed listing raises RequestError.
        """
        transport = httpx.MockTransport(lambda request: httpx.Response(403, text='Forbidden'))
        async with httpx.AsyncClient(transport=transport) as client:
            with self.assertRaises(RequestError) as ctx:
                await get_items(client, 'token123', 'publisher-456')
        self.assertEqual(ctx.exception.status, 403)
        self.assertIn('Forbidden', str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
