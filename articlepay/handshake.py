"""
Signature-based request authentication.

A client proves control of an identity key without sending a secret:

1. ``POST /auth/challenge`` returns a single-use nonce.
2. The client signs ``sha256("{nonce}:{METHOD}:{path}")`` with its secp256k1
   key and sends the request with ``X-Identity-Key``, ``X-Auth-Nonce`` and
   ``X-Auth-Signature`` (hex DER) headers.
3. The server consumes the nonce and verifies the signature against the key.

The authenticated key becomes the request's identity; no further client input
is trusted.
"""

import hashlib
import logging
from functools import wraps
from typing import Optional, Tuple

from coincurve import PublicKey
from flask import current_app, g, request

from articlepay import storage, utils
from articlepay.access import Identity
from articlepay.audit_logger import get_audit_logger
from articlepay.errors import AuthenticationRequired

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

IDENTITY_HEADER = "X-Identity-Key"
NONCE_HEADER = "X-Auth-Nonce"
SIGNATURE_HEADER = "X-Auth-Signature"

DEFAULT_CHALLENGE_TTL = 600


def signing_digest(nonce: str, method: str, path: str) -> bytes:
    """Digest the client signs for one request."""
    return hashlib.sha256(f"{nonce}:{method.upper()}:{path}".encode("utf-8")).digest()


def issue_challenge() -> Tuple[str, int]:
    """Create and store a fresh nonce. Returns ``(nonce, ttl_seconds)``."""
    cfg = current_app.config.get("APP_CONFIG", {})
    ttl = cfg.get("AUTH_CHALLENGE_TTL", DEFAULT_CHALLENGE_TTL)
    nonce = utils.secure_random_hex(32)
    storage.store_challenge(nonce, ttl)
    return nonce, ttl


def verify_signature(pubkey_hex: str, signature_hex: str, digest: bytes) -> bool:
    try:
        pk = PublicKey(bytes.fromhex(pubkey_hex))
        return pk.verify(bytes.fromhex(signature_hex), digest, hasher=None)
    except ValueError as e:
        logger.debug(f"Signature verify error: {e}")
        return False


def authenticate_request(req=None) -> Optional[Identity]:
    """
    Establish the caller's identity from handshake headers.

    Returns:
        The signed identity, or None when the request carries no handshake

    Raises:
        AuthenticationRequired: headers present but the handshake fails
    """
    req = req or request
    pubkey = (req.headers.get(IDENTITY_HEADER) or "").strip()
    nonce = (req.headers.get(NONCE_HEADER) or "").strip()
    signature = (req.headers.get(SIGNATURE_HEADER) or "").strip()

    if not (pubkey or nonce or signature):
        return None

    def reject(reason: str, message: str):
        audit_logger.log_signature_verification(pubkey, success=False, reason=reason)
        audit_logger.log_auth_attempt(pubkey, "signature", False, req.remote_addr)
        return AuthenticationRequired(message, reason=reason)

    if not (pubkey and nonce and signature):
        raise reject("incomplete_headers", "Signed requests need identity key, nonce and signature headers")

    if not utils.is_valid_pubkey(pubkey):
        raise reject("invalid_identity_key", "Identity key must be a 66 character compressed public key")

    if not utils.validate_hex_format(nonce, 64) or not storage.consume_challenge(nonce):
        raise reject("invalid_nonce", "Invalid or expired challenge")

    if not verify_signature(pubkey, signature, signing_digest(nonce, req.method, req.path)):
        raise reject("invalid_signature", "Invalid signature")

    audit_logger.log_signature_verification(pubkey, success=True)
    audit_logger.log_auth_attempt(pubkey, "signature", True, req.remote_addr)
    return Identity.from_identity_key(pubkey)


def require_signature(view):
    """Route decorator: reject requests that do not complete the handshake."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        identity = authenticate_request()
        if identity is None:
            raise AuthenticationRequired(
                "Authentication required",
                reason="missing_signature",
                hint="Sign the request with your identity key (see /auth/challenge)",
            )
        g.identity = identity
        return view(*args, **kwargs)

    return wrapper
