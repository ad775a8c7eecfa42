"""
Utility functions for articlepay

Shared helpers for identity keys, addresses, and random tokens.
"""

import hashlib
import re
import secrets
from hashlib import sha256

import base58

MAINNET_P2PKH_VERSION = b"\x00"


def ripemd160_available() -> bool:
    """Whether the linked OpenSSL still provides RIPEMD-160."""
    return "ripemd160" in hashlib.algorithms_available


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256, as used for pay-to-address hashes."""
    try:
        return hashlib.new("ripemd160", sha256(data).digest()).digest()
    except ValueError as exc:
        raise RuntimeError("RIPEMD-160 is not available in this Python build") from exc


def derive_legacy_address_from_pubkey(pubkey_hex: str) -> str:
    """
    Derive legacy Bitcoin address (P2PKH) from public key.

    Args:
        pubkey_hex: Hex-encoded public key (66 or 130 chars)

    Returns:
        Base58-encoded Bitcoin address
    """
    pubkey_bytes = bytes.fromhex(pubkey_hex)
    vbyte = MAINNET_P2PKH_VERSION + hash160(pubkey_bytes)
    chksum = sha256(sha256(vbyte).digest()).digest()[:4]
    address = base58.b58encode(vbyte + chksum).decode()
    return address


def is_valid_pubkey(pubkey: str) -> bool:
    """
    Validate compressed secp256k1 public key format.

    Args:
        pubkey: Hex-encoded public key

    Returns:
        True if valid format
    """
    if not pubkey:
        return False
    return bool(re.fullmatch(r"0[23][0-9a-fA-F]{64}", pubkey))


def validate_hex_format(value: str, length: int) -> bool:
    """
    Validate hexadecimal string format.

    Args:
        value: String to validate
        length: Expected hex string length

    Returns:
        True if valid hex string of specified length
    """
    if not value:
        return False
    return bool(re.fullmatch(r"[0-9a-fA-F]{{{}}}".format(length), value))


def secure_random_hex(nbytes: int = 32) -> str:
    """
    Generate cryptographically secure random hex string.

    Args:
        nbytes: Number of random bytes

    Returns:
        Hex-encoded random string
    """
    return secrets.token_hex(nbytes)
