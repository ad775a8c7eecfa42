"""On-chain confirmation of claimed article payments.

The purchase verifier hands every new ``txid`` to a confirmer together with
the outputs the transaction must contain. ``TrustingConfirmer`` accepts every
claim and is only suitable for development. ``RPCConfirmer`` asks a node
for the transaction.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Sequence

from bitcoinrpc.authproxy import AuthServiceProxy, JSONRPCException

logger = logging.getLogger(__name__)

SATOSHIS_PER_COIN = Decimal(100_000_000)


class ConfirmationError(Exception):
    """Raised when a confirmer cannot be built from configuration."""

    pass


@dataclass(frozen=True)
class ExpectedOutput:
    locking_script: str  # hex
    satoshis: int


class TransactionConfirmer:
    """Interface: ``confirm(txid, expected_outputs) -> bool``."""

    def confirm(self, txid: str, expected_outputs: Sequence[ExpectedOutput]) -> bool:
        raise NotImplementedError


class TrustingConfirmer(TransactionConfirmer):
    """Accepts every claimed transaction without looking at the chain."""

    def confirm(self, txid: str, expected_outputs: Sequence[ExpectedOutput]) -> bool:
        logger.warning(f"⚠️  Recording {txid} without on-chain confirmation (PAYMENT_CONFIRMER=trust)")
        return True


def _to_satoshis(value: Any) -> int:
    return int((Decimal(str(value)) * SATOSHIS_PER_COIN).to_integral_value())


def outputs_satisfied(vouts: Iterable[Mapping[str, Any]], expected_outputs: Sequence[ExpectedOutput]) -> bool:
    """Every expected output is matched by an output with the same script paying at least as much."""
    actual = [
        ((vout.get("scriptPubKey") or {}).get("hex", "").lower(), _to_satoshis(vout.get("value", 0)))
        for vout in vouts
    ]
    for expected in expected_outputs:
        script = expected.locking_script.lower()
        if not any(s == script and sats >= expected.satoshis for s, sats in actual):
            return False
    return True


class RPCConfirmer(TransactionConfirmer):
    """Confirms payments through a node's ``getrawtransaction`` RPC."""

    def __init__(self, rpc_factory: Callable[[], AuthServiceProxy], min_confirmations: int = 0):
        self.rpc_factory = rpc_factory
        self.min_confirmations = min_confirmations

    def confirm(self, txid: str, expected_outputs: Sequence[ExpectedOutput]) -> bool:
        try:
            tx = self.rpc_factory().getrawtransaction(txid, True)
        except JSONRPCException as e:
            logger.info(f"Transaction {txid} not found by node: {e.error}")
            return False
        except (OSError, ValueError) as e:
            logger.error(f"RPC lookup of {txid} failed: {e}")
            return False

        confirmations = tx.get("confirmations", 0) or 0
        if confirmations < self.min_confirmations:
            logger.info(f"Transaction {txid} has {confirmations} confirmations, need {self.min_confirmations}")
            return False

        if not outputs_satisfied(tx.get("vout", []), expected_outputs):
            logger.warning(f"Transaction {txid} does not pay the expected outputs")
            return False

        return True


def get_rpc_connection(cfg: Mapping[str, Any]) -> AuthServiceProxy:
    """
    Create node RPC connection from configuration.

    Returns:
        AuthServiceProxy instance
    """
    url = f"http://{cfg['RPC_USER']}:{cfg['RPC_PASSWORD']}@{cfg['RPC_HOST']}:{cfg['RPC_PORT']}"
    if cfg.get("RPC_WALLET"):
        url += f"/wallet/{cfg['RPC_WALLET']}"
    return AuthServiceProxy(url, timeout=60)


def build_confirmer(cfg: Mapping[str, Any]) -> TransactionConfirmer:
    """Select the confirmer named by ``PAYMENT_CONFIRMER``."""
    kind = cfg.get("PAYMENT_CONFIRMER", "trust")
    if kind == "trust":
        return TrustingConfirmer()
    if kind == "rpc":
        return RPCConfirmer(lambda: get_rpc_connection(cfg), min_confirmations=cfg.get("MIN_CONFIRMATIONS", 0))
    raise ConfirmationError(f"Unknown PAYMENT_CONFIRMER: {kind!r}")
