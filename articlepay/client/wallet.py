"""HTTP client for a local wallet agent.

The wallet agent exposes a small JSON-over-HTTP interface on localhost
(``isAuthenticated``, ``getPublicKey``, ``createAction``). Anything that
provides the same three methods can stand in for it.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from articlepay.client.exceptions import WalletUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_WALLET_URL = "http://localhost:3321"


class HTTPWalletClient:
    """Talks to a wallet agent over its local HTTP interface."""

    # createAction waits for the user to approve in the wallet
    def __init__(self, base_url: str = DEFAULT_WALLET_URL, timeout: int = 30, originator: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.originator = originator

    def _call(self, method: str, args: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.originator:
            headers["Originator"] = self.originator
        try:
            resp = requests.post(
                f"{self.base_url}/{method}", json=args or {}, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise WalletUnavailableError(f"Wallet agent unreachable at {self.base_url}: {e}") from e

        if resp.status_code >= 300:
            raise WalletUnavailableError(f"Wallet {method} failed: {resp.status_code} {resp.text}")
        return resp.json()

    def is_authenticated(self) -> bool:
        return bool(self._call("isAuthenticated").get("authenticated"))

    def get_public_key(self, identity_key: bool = True) -> str:
        result = self._call("getPublicKey", {"identityKey": identity_key})
        public_key = result.get("publicKey")
        if not public_key:
            raise WalletUnavailableError("Wallet returned no public key")
        return public_key

    def create_action(self, description: str, outputs: List[Dict[str, Any]]) -> Dict[str, Any]:
        logger.info(f"Submitting createAction with {len(outputs)} outputs")
        return self._call("createAction", {"description": description, "outputs": outputs})
