"""
Client-side wallet session.

A session remembers which identity key connected, so a later run can restore
the connection without prompting, provided the same key is still
authenticated and the session has not expired.
"""

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Optional

from articlepay.client.exceptions import WalletUnavailableError
from articlepay.utils import derive_legacy_address_from_pubkey

logger = logging.getLogger(__name__)

SESSION_TTL = 30 * 60  # 30 minutes


@dataclass(frozen=True)
class WalletSession:
    identity_key: str
    address: str
    issued_at: float
    ttl: int = SESSION_TTL

    def is_expired(self, now: float) -> bool:
        return now - self.issued_at > self.ttl


class SessionStore:
    """Persists at most one WalletSession."""

    def load(self) -> Optional[WalletSession]:
        raise NotImplementedError

    def save(self, session: WalletSession) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self):
        self._session: Optional[WalletSession] = None

    def load(self) -> Optional[WalletSession]:
        return self._session

    def save(self, session: WalletSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class JsonFileSessionStore(SessionStore):
    """Session kept as a small JSON document on disk."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[WalletSession]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return WalletSession(**data)
        except FileNotFoundError:
            return None
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable wallet session at {self.path}: {e}")
            self.clear()
            return None

    def save(self, session: WalletSession) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(asdict(session), f)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


def connect_wallet(wallet, store: SessionStore, now: Optional[float] = None) -> WalletSession:
    """
    Connect to an authenticated wallet and persist the session.

    Raises:
        WalletUnavailableError: No wallet, the wallet is not authenticated, or no
            address can be derived from its identity key
    """
    if wallet is None or not wallet.is_authenticated():
        raise WalletUnavailableError("Wallet is not authenticated. Please authenticate in your wallet first.")

    identity_key = wallet.get_public_key(identity_key=True)
    try:
        address = derive_legacy_address_from_pubkey(identity_key)
    except (RuntimeError, ValueError) as e:
        raise WalletUnavailableError(f"Cannot derive a wallet address from identity key: {e}") from e

    session = WalletSession(
        identity_key=identity_key,
        address=address,
        issued_at=time.time() if now is None else now,
    )
    store.save(session)

    logger.info(f"Wallet connected: {address}")
    return session


def restore_session(wallet, store: SessionStore, now: Optional[float] = None) -> Optional[WalletSession]:
    """
    Restore a stored session if it is still valid for this wallet.

    Expired sessions, unauthenticated wallets and key mismatches clear the store.
    """
    session = store.load()
    if session is None:
        return None

    now = time.time() if now is None else now
    if session.is_expired(now):
        logger.info("Wallet session expired")
        store.clear()
        return None

    try:
        if wallet is None or not wallet.is_authenticated():
            store.clear()
            return None
        identity_key = wallet.get_public_key(identity_key=True)
    except WalletUnavailableError as e:
        logger.warning(f"Failed to restore wallet session: {e}")
        store.clear()
        return None

    if identity_key != session.identity_key:
        logger.warning("Wallet identity changed since the session was stored")
        store.clear()
        return None

    return session


def disconnect_wallet(store: SessionStore) -> None:
    store.clear()
    logger.info("Wallet disconnected")
