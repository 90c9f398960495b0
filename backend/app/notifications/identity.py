"""
identity.py — Identity-provider admin lookups (Supabase Auth).

    GET {SUPABASE_URL}/auth/v1/admin/users?page=N&per_page=M
    apikey: <service role key>
    Authorization: Bearer <service role key>

The listing is paged; every page is read until a short page comes back,
so accounts beyond the first page are not silently missed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# Hard stop in case the provider keeps returning full pages
MAX_PAGES = 500


@dataclass(frozen=True)
class IdentityAccount:
    account_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "IdentityAccount":
        metadata = data.get("user_metadata") or {}
        return cls(
            account_id=str(data["id"]),
            email=data.get("email") or None,
            phone=data.get("phone") or None,
            full_name=metadata.get("full_name") or None,
        )


class IdentityAdminClient:
    """
    Bulk account listing over the admin API.

    Raises ``httpx.HTTPError``: ``HTTPStatusError`` on non-2xx, and
    ``DecodingError`` when a 2xx body is not the expected JSON listing;
    callers decide how to classify the failure.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        page_size: int = 200,
        timeout_seconds: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.users_url = f"{base_url.rstrip('/')}/auth/v1/admin/users"
        self.page_size = page_size
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def _fetch_page(self, page: int) -> List[IdentityAccount]:
        response = await self._http.get(
            self.users_url,
            headers=self._headers,
            params={"page": page, "per_page": self.page_size},
        )
        response.raise_for_status()
        try:
            users = response.json().get("users") or []
            return [IdentityAccount.from_api(u) for u in users]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise httpx.DecodingError(
                f"Malformed admin users response (page {page}): {exc!r}",
                request=response.request,
            ) from exc

    async def list_accounts(self) -> List[IdentityAccount]:
        accounts: List[IdentityAccount] = []
        for page in range(1, MAX_PAGES + 1):
            batch = await self._fetch_page(page)
            accounts.extend(batch)
            if len(batch) < self.page_size:
                break
        else:
            logger.warning("Identity listing stopped after %d pages", MAX_PAGES)

        logger.debug("Identity listing returned %d accounts", len(accounts))
        return accounts

    async def close(self) -> None:
        if self._owns_client and not self._http.is_closed:
            await self._http.aclose()
