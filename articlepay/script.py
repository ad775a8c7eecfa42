"""
Locking-script builders for article payments.

Both the client (building the unlock transaction) and the server (checking a
transaction's outputs during confirmation) need the same byte-exact scripts.
"""

from typing import Iterable, Union

import base58

OP_FALSE = 0x00
OP_RETURN = 0x6A
OP_DUP = 0x76
OP_HASH160 = 0xA9
OP_EQUALVERIFY = 0x88
OP_CHECKSIG = 0xAC
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E

P2PKH_VERSIONS = (0x00, 0x6F)  # mainnet, testnet

UNLOCK_PROTOCOL_MARKER = b"article-unlock"


def address_to_pubkey_hash(address: str) -> bytes:
    """Decode a Base58Check P2PKH address into its 20-byte key hash.

    Raises:
        ValueError: bad checksum, unknown version byte or wrong length
    """
    payload = base58.b58decode_check(address)
    if len(payload) != 21 or payload[0] not in P2PKH_VERSIONS:
        raise ValueError(f"Not a P2PKH address: {address!r}")
    return payload[1:]


def p2pkh_locking_script(address: str) -> str:
    """Standard pay-to-address locking script, hex encoded."""
    pubkey_hash = address_to_pubkey_hash(address)
    script = bytes([OP_DUP, OP_HASH160, len(pubkey_hash)]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    return script.hex()


def push_data(data: bytes) -> bytes:
    """Minimal push of ``data`` with the appropriate length prefix."""
    size = len(data)
    if size < OP_PUSHDATA1:
        return bytes([size]) + data
    if size <= 0xFF:
        return bytes([OP_PUSHDATA1, size]) + data
    if size <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + size.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + size.to_bytes(4, "little") + data


def data_carrier_script(items: Iterable[Union[bytes, str]]) -> str:
    """``OP_FALSE OP_RETURN`` followed by one push per item, hex encoded."""
    script = bytes([OP_FALSE, OP_RETURN])
    for item in items:
        if isinstance(item, str):
            item = item.encode("utf-8")
        script += push_data(item)
    return script.hex()


def unlock_metadata_script(article_id: str, title: str, price: int) -> str:
    """Zero-value metadata output tagging an unlock payment with the article it pays for."""
    return data_carrier_script([UNLOCK_PROTOCOL_MARKER, article_id, title, str(price)])
