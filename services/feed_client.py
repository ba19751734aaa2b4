import logging

import requests

from config import FEED_API_KEY, FEED_BASE_URL, FEED_TIMEOUT
from services.errors import UpstreamFeedError


class FeedClient:
    """
    HTTP client for the external transaction feed.

    ``GET {base_url}/accounts`` lists the linked accounts as ``{"accounts": [...]}``.
    ``GET {base_url}/accounts/{external_account_id}/transactions?cursor=...``
    answers with ``{"transactions": [...], "next_cursor": ..., "has_more": ...,
    "balance": ...}``. Every transport or payload failure is raised as
    ``UpstreamFeedError``.
    """

    def __init__(self, base_url=None, api_key=None, timeout=None, session=None):
        self.base_url = (base_url or FEED_BASE_URL or "").rstrip("/")
        self.api_key = api_key if api_key is not None else FEED_API_KEY
        self.timeout = timeout or FEED_TIMEOUT
        self.session = session or requests.Session()

    def _get(self, path, params=None):
        if not self.base_url:
            raise UpstreamFeedError("FEED_BASE_URL is not configured")

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            resp = self.session.get(
                f"{self.base_url}{path}",
                params=params or {},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logging.error(f"Feed request failed for {path}: {e}")
            raise UpstreamFeedError(f"Feed request failed: {e}") from e

        if resp.status_code != 200:
            raise UpstreamFeedError(f"Feed returned HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamFeedError("Feed returned invalid JSON") from e

        if not isinstance(data, dict):
            raise UpstreamFeedError("Feed returned an unexpected payload")
        return data

    def fetch_accounts(self):
        data = self._get("/accounts")
        if not isinstance(data.get("accounts"), list):
            raise UpstreamFeedError("Feed response is missing the accounts list")
        return data["accounts"]

    def fetch_transactions(self, external_account_id, cursor=None):
        data = self._get(
            f"/accounts/{external_account_id}/transactions",
            params={"cursor": cursor} if cursor else {},
        )
        if not isinstance(data.get("transactions"), list):
            raise UpstreamFeedError("Feed response is missing the transactions list")

        return {
            "transactions": data["transactions"],
            "next_cursor": data.get("next_cursor"),
            "has_more": bool(data.get("has_more")),
            "balance": data.get("balance"),
        }
