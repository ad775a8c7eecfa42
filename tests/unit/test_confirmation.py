"""
Unit tests for transaction confirmers.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from bitcoinrpc.authproxy import JSONRPCException

from articlepay.payments.confirmation import (
    ConfirmationError,
    ExpectedOutput,
    RPCConfirmer,
    TrustingConfirmer,
    build_confirmer,
    get_rpc_connection,
    outputs_satisfied,
)
from articlepay.script import p2pkh_locking_script

ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
SCRIPT = p2pkh_locking_script(ADDRESS)
EXPECTED = [ExpectedOutput(SCRIPT, 100)]


def _tx(value, script=SCRIPT, confirmations=1):
    return {
        "txid": "ab" * 32,
        "confirmations": confirmations,
        "vout": [
            {"value": value, "n": 0, "scriptPubKey": {"hex": script}},
            {"value": Decimal("0"), "n": 1, "scriptPubKey": {"hex": "006a"}},
        ],
    }


@pytest.fixture
def rpc():
    return MagicMock()


class TestOutputsSatisfied:
    def test_exact_amount(self):
        assert outputs_satisfied(_tx(Decimal("0.00000100"))["vout"], EXPECTED)

    def test_overpayment(self):
        assert outputs_satisfied(_tx(Decimal("0.001"))["vout"], EXPECTED)

    def test_underpayment(self):
        assert not outputs_satisfied(_tx(Decimal("0.00000099"))["vout"], EXPECTED)

    def test_wrong_script(self):
        other = p2pkh_locking_script("1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2")
        assert not outputs_satisfied(_tx(Decimal("1"), script=other)["vout"], EXPECTED)

    def test_float_values_are_converted_exactly(self):
        assert outputs_satisfied(_tx(0.000001)["vout"], EXPECTED)


class TestTrustingConfirmer:
    def test_always_confirms(self):
        assert TrustingConfirmer().confirm("anything", EXPECTED) is True


class TestRPCConfirmer:
    def test_confirms_matching_transaction(self, rpc):
        rpc.getrawtransaction.return_value = _tx(Decimal("0.000001"))
        confirmer = RPCConfirmer(lambda: rpc)

        assert confirmer.confirm("ab" * 32, EXPECTED) is True
        rpc.getrawtransaction.assert_called_once_with("ab" * 32, True)

    def test_rejects_unknown_transaction(self, rpc):
        rpc.getrawtransaction.side_effect = JSONRPCException({"code": -5, "message": "No such mempool transaction"})

        assert RPCConfirmer(lambda: rpc).confirm("ff" * 32, EXPECTED) is False

    def test_rejects_when_node_unreachable(self, rpc):
        rpc.getrawtransaction.side_effect = ConnectionRefusedError("refused")

        assert RPCConfirmer(lambda: rpc).confirm("ab" * 32, EXPECTED) is False

    def test_requires_minimum_confirmations(self, rpc):
        rpc.getrawtransaction.return_value = _tx(Decimal("0.000001"), confirmations=0)

        assert RPCConfirmer(lambda: rpc, min_confirmations=1).confirm("ab" * 32, EXPECTED) is False
        assert RPCConfirmer(lambda: rpc, min_confirmations=0).confirm("ab" * 32, EXPECTED) is True

    def test_mempool_transaction_without_confirmations_field(self, rpc):
        tx = _tx(Decimal("0.000001"))
        del tx["confirmations"]
        rpc.getrawtransaction.return_value = tx

        assert RPCConfirmer(lambda: rpc, min_confirmations=0).confirm("ab" * 32, EXPECTED) is True

    def test_rejects_underpaying_transaction(self, rpc):
        rpc.getrawtransaction.return_value = _tx(Decimal("0.0000005"))

        assert RPCConfirmer(lambda: rpc).confirm("ab" * 32, EXPECTED) is False


class TestBuildConfirmer:
    def test_trust(self):
        assert isinstance(build_confirmer({"PAYMENT_CONFIRMER": "trust"}), TrustingConfirmer)

    def test_rpc(self):
        cfg = {
            "PAYMENT_CONFIRMER": "rpc",
            "MIN_CONFIRMATIONS": 3,
            "RPC_USER": "u",
            "RPC_PASSWORD": "p",
            "RPC_HOST": "localhost",
            "RPC_PORT": 8332,
        }
        confirmer = build_confirmer(cfg)

        assert isinstance(confirmer, RPCConfirmer)
        assert confirmer.min_confirmations == 3

    def test_unknown(self):
        with pytest.raises(ConfirmationError):
            build_confirmer({"PAYMENT_CONFIRMER": "oracle"})

    def test_rpc_url_includes_wallet(self):
        cfg = {"RPC_USER": "u", "RPC_PASSWORD": "p", "RPC_HOST": "node", "RPC_PORT": 18332, "RPC_WALLET": "shop"}

        proxy = get_rpc_connection(cfg)

        assert proxy._AuthServiceProxy__url.path == "/wallet/shop"
