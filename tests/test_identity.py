"""
test_identity.py — Identity-provider admin listing.

Run with:
    pytest tests/test_identity.py -v
"""

from __future__ import annotations

from typing import List

import httpx
import pytest

from backend.app.notifications.identity import IdentityAccount, IdentityAdminClient


def _users(start: int, count: int) -> List[dict]:
    return [
        {"id": f"u{i}", "email": f"u{i}@example.com", "phone": "",
         "user_metadata": {"full_name": f"User {i}"}}
        for i in range(start, start + count)
    ]


class TestIdentityAccount:

    def test_from_api(self):
        account = IdentityAccount.from_api(_users(0, 1)[0])
        assert account == IdentityAccount("u0", "u0@example.com", None, "User 0")

    def test_missing_metadata(self):
        account = IdentityAccount.from_api({"id": "u9", "email": None})
        assert account.full_name is None
        assert account.email is None


class TestIdentityAdminClient:

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self):
        pages = {1: _users(0, 2), 2: _users(2, 2), 3: _users(4, 1)}
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            page = int(request.url.params["page"])
            return httpx.Response(200, json={"users": pages.get(page, [])})

        client = IdentityAdminClient(
            "https://project.supabase.co/", "svc-key", page_size=2,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        accounts = await client.list_accounts()

        assert [a.account_id for a in accounts] == ["u0", "u1", "u2", "u3", "u4"]
        assert len(seen) == 3
        assert seen[0].url.path == "/auth/v1/admin/users"
        assert seen[0].url.params["per_page"] == "2"
        assert seen[0].headers["apikey"] == "svc-key"
        assert seen[0].headers["authorization"] == "Bearer svc-key"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"msg": "invalid key"})

        client = IdentityAdminClient(
            "https://project.supabase.co", "bad",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await client.list_accounts()

    @pytest.mark.asyncio
    async def test_empty_listing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"users": []})

        client = IdentityAdminClient(
            "https://project.supabase.co", "svc-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        assert await client.list_accounts() == []

    @pytest.mark.asyncio
    async def test_non_json_body_raises_decoding_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        client = IdentityAdminClient(
            "https://project.supabase.co", "svc-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(httpx.DecodingError):
            await client.list_accounts()

    @pytest.mark.asyncio
    async def test_account_without_id_raises_decoding_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"users": [{"email": "x@example.com"}]})

        client = IdentityAdminClient(
            "https://project.supabase.co", "svc-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(httpx.DecodingError) as exc_info:
            await client.list_accounts()
        assert "page 1" in str(exc_info.value)
