"""
Backend API client.

Wraps the articlepay HTTP surface and turns error responses into typed
exceptions. Content fetches go through an AuthFetchAdapter so the caller
decides which authentication channels are acceptable.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from articlepay.client.exceptions import error_for_status
from articlepay.client.payment import purchase_article

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"


def _parse(resp) -> Any:
    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.status_code >= 300:
        raise error_for_status(resp.status_code, body if isinstance(body, dict) else {"message": resp.text})
    return body


class ArticleClient:
    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: int = 10, http=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _get(self, path: str) -> Any:
        return _parse(self.http.get(self.url(path), timeout=self.timeout))

    def list_articles(self) -> List[Dict[str, Any]]:
        return self._get("/articles")

    def get_article(self, article_id: str) -> Dict[str, Any]:
        return self._get(f"/articles/{article_id}")

    def get_access_info(self, article_id: str) -> Dict[str, Any]:
        return self._get(f"/articles/{article_id}/info")

    def list_purchases(self, wallet_address: str) -> List[Dict[str, Any]]:
        return self._get(f"/articles/purchases/{wallet_address}")

    def verify_purchase(
        self, article_id: str, txid: str, wallet_address: str, satoshis_paid: Optional[int]
    ) -> Dict[str, Any]:
        """Record a broadcast payment. Safe to repeat with the same txid."""
        payload = {"txid": txid, "walletAddress": wallet_address, "satoshisPaid": satoshis_paid}
        resp = self.http.post(self.url(f"/articles/{article_id}/verify-purchase"), json=payload, timeout=self.timeout)
        return _parse(resp)

    def fetch_content(self, article_id: str, adapter, html: bool = False) -> Dict[str, Any]:
        """Full article for the identity the adapter authenticates as."""
        url = self.url(f"/articles/{article_id}/content")
        if html:
            url += "?format=html"
        return _parse(adapter.fetch("GET", url))

    def unlock(self, article_id: str, wallet, address: str, adapter) -> Dict[str, Any]:
        """
        Pay for an article, record the payment, then fetch the content.

        Args:
            article_id: Article to unlock
            wallet: Wallet used to build and broadcast the payment
            address: Buyer identity the purchase is recorded under
            adapter: AuthFetchAdapter used for the content request
        """
        article = self.get_article(article_id)
        txid = purchase_article(wallet, article)
        self.verify_purchase(article_id, txid, address, int(article["price"]))
        logger.info(f"Purchase of article {article_id} recorded ({txid})")
        return self.fetch_content(article_id, adapter)
