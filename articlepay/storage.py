"""Short-lived challenge storage for the signature handshake.

Nonces live in Redis when it is configured, so every worker sees them.
Without Redis a process-local dictionary is used, which is enough for tests
and single-process development servers. A nonce can be consumed exactly once
in both backends.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from articlepay.database import get_redis

CHALLENGE_KEY_PREFIX = "articlepay:challenge:"

# Public storage dictionary used by the test-suite fixtures.
CHALLENGES: Dict[str, datetime] = {}
_lock = threading.Lock()


def store_challenge(nonce: str, ttl: int) -> None:
    redis_client = get_redis()
    if redis_client is not None:
        redis_client.set(CHALLENGE_KEY_PREFIX + nonce, "1", ex=ttl)
        return

    with _lock:
        _purge_expired()
        CHALLENGES[nonce] = datetime.utcnow() + timedelta(seconds=ttl)


def consume_challenge(nonce: str) -> bool:
    """Remove ``nonce`` and report whether it was outstanding and unexpired."""
    redis_client = get_redis()
    if redis_client is not None:
        return redis_client.delete(CHALLENGE_KEY_PREFIX + nonce) == 1

    with _lock:
        expires_at: Optional[datetime] = CHALLENGES.pop(nonce, None)
    return expires_at is not None and expires_at >= datetime.utcnow()


def clear_challenges() -> None:
    with _lock:
        CHALLENGES.clear()


def _purge_expired() -> None:
    now = datetime.utcnow()
    for nonce in [n for n, expires_at in CHALLENGES.items() if expires_at < now]:
        CHALLENGES.pop(nonce, None)
