"""
Authenticated fetch with channel fallback.

Protected content is fetched through the strongest channel available:

1. an installed signing agent (``install_signing_agent``)
2. the connected wallet's own ``auth_fetch``
3. a trust-based POST carrying the buyer address

The adapter picks the first available channel and uses only that one. A
failure on the chosen channel is returned or raised as is; it is never
retried on a weaker channel.
"""

import hashlib
import logging
import time
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

import requests
from coincurve import PrivateKey

from articlepay.client.exceptions import NoAuthChannelAvailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

_installed_agent = None


def install_signing_agent(agent) -> None:
    """Register the process-wide signing agent (``None`` removes it)."""
    global _installed_agent
    _installed_agent = agent
    if agent is not None:
        logger.info(f"Signing agent installed: {type(agent).__name__}")


def get_installed_agent():
    return _installed_agent


def _has_auth_fetch(obj) -> bool:
    return obj is not None and callable(getattr(obj, "auth_fetch", None))


class AuthChannel:
    """One way of making an authenticated request."""

    name = "base"

    def available(self) -> bool:
        raise NotImplementedError

    def fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        raise NotImplementedError


class AgentChannel(AuthChannel):
    name = "agent"

    def __init__(self, agent=None):
        self._agent = agent

    @property
    def agent(self):
        return self._agent if self._agent is not None else get_installed_agent()

    def available(self) -> bool:
        return _has_auth_fetch(self.agent)

    def fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.info("🔐 Using signing agent auth_fetch")
        return self.agent.auth_fetch(method, url, **kwargs)


class WalletChannel(AuthChannel):
    name = "wallet"

    def __init__(self, wallet=None):
        self.wallet = wallet

    def available(self) -> bool:
        return _has_auth_fetch(self.wallet)

    def fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.info("🔐 Using wallet auth_fetch")
        return self.wallet.auth_fetch(method, url, **kwargs)


class TrustedAddressChannel(AuthChannel):
    """Re-issues the request as a POST naming the buyer address."""

    name = "trusted_address"

    def __init__(
        self,
        address: Optional[str] = None,
        store=None,
        timeout: int = DEFAULT_TIMEOUT,
        http=None,
        now: Optional[Callable[[], float]] = None,
    ):
        self._address = address
        self.store = store
        self.timeout = timeout
        self.http = http or requests
        self.now = now or time.time

    @property
    def address(self) -> Optional[str]:
        if self._address:
            return self._address
        if self.store is not None:
            session = self.store.load()
            if session is not None:
                # A stored address expires with its session
                if session.is_expired(self.now()):
                    logger.info("Stored wallet session expired; dropping cached address")
                    self.store.clear()
                    return None
                return session.address
        return None

    def available(self) -> bool:
        return bool(self.address)

    def fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        address = self.address
        logger.warning(f"⚠️ Signed requests unavailable, falling back to trust-based POST for {address}")
        headers = {"Content-Type": "application/json", **(kwargs.pop("headers", None) or {})}
        kwargs.pop("json", None)
        kwargs.pop("data", None)
        kwargs.setdefault("timeout", self.timeout)
        return self.http.post(url, json={"walletAddress": address}, headers=headers, **kwargs)


def build_channels(wallet=None, address: Optional[str] = None, store=None, http=None, now=None) -> List[AuthChannel]:
    """The standard channel order: agent, wallet, trusted address."""
    return [
        AgentChannel(),
        WalletChannel(wallet),
        TrustedAddressChannel(address=address, store=store, http=http, now=now),
    ]


class AuthFetchAdapter:
    def __init__(self, channels: Optional[Sequence[AuthChannel]] = None):
        self.channels = list(channels) if channels is not None else build_channels()

    @classmethod
    def for_wallet(
        cls, wallet=None, address: Optional[str] = None, store=None, http=None, now=None
    ) -> "AuthFetchAdapter":
        return cls(build_channels(wallet=wallet, address=address, store=store, http=http, now=now))

    def select(self) -> AuthChannel:
        for channel in self.channels:
            if channel.available():
                return channel
        raise NoAuthChannelAvailable(
            "Signed requests are not available and no wallet address was provided for the fallback"
        )

    def fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        channel = self.select()
        logger.debug(f"auth_fetch {method} {url} via {channel.name}")
        return channel.fetch(method, url, **kwargs)


class SignatureAuthAgent:
    """
    Signing agent backed by a local secp256k1 key.

    Each request costs one challenge: the agent asks the server for a nonce,
    signs ``sha256("{nonce}:{METHOD}:{path}")`` and sends the request with the
    identity, nonce and signature headers.
    """

    def __init__(
        self,
        private_key: PrivateKey,
        challenge_url: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        http=None,
    ):
        if isinstance(private_key, (bytes, str)):
            private_key = PrivateKey(bytes.fromhex(private_key) if isinstance(private_key, str) else private_key)
        self.private_key = private_key
        self.challenge_url = challenge_url
        self.timeout = timeout
        self.http = http or requests.Session()

    @property
    def identity_key(self) -> str:
        return self.private_key.public_key.format(compressed=True).hex()

    def _challenge_url_for(self, url: str) -> str:
        if self.challenge_url:
            return self.challenge_url
        parts = urlsplit(url)
        marker = parts.path.find("/articles/")
        prefix = parts.path[:marker] if marker >= 0 else ""
        return urlunsplit((parts.scheme, parts.netloc, f"{prefix}/auth/challenge", "", ""))

    def sign(self, nonce: str, method: str, path: str) -> str:
        digest = hashlib.sha256(f"{nonce}:{method.upper()}:{path}".encode("utf-8")).digest()
        return self.private_key.sign(digest, hasher=None).hex()

    def auth_fetch(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        resp = self.http.post(self._challenge_url_for(url), timeout=self.timeout)
        resp.raise_for_status()
        nonce = resp.json()["nonce"]

        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(
            {
                "X-Identity-Key": self.identity_key,
                "X-Auth-Nonce": nonce,
                "X-Auth-Signature": self.sign(nonce, method, urlsplit(url).path),
            }
        )
        kwargs.setdefault("timeout", self.timeout)
        return self.http.request(method.upper(), url, headers=headers, **kwargs)
