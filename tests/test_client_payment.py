"""
Tests for the client payment constructor and the wallet agent client.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from articlepay.client.exceptions import PaymentConstructionError, WalletUnavailableError
from articlepay.client.payment import build_unlock_outputs, purchase_article
from articlepay.client.wallet import HTTPWalletClient
from articlepay.script import p2pkh_locking_script, unlock_metadata_script

ARTICLE = {
    "id": "a1",
    "title": "Test Article",
    "author": "Test Author",
    "authorPaymentAddress": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
    "price": 100,
}


class FakeWallet:
    def __init__(self, result=None):
        self.result = {"txid": "ab" * 32} if result is None else result
        self.actions = []

    def create_action(self, description, outputs):
        self.actions.append({"description": description, "outputs": outputs})
        return self.result


class TestBuildUnlockOutputs:
    def test_two_outputs(self):
        outputs = build_unlock_outputs(ARTICLE)

        assert len(outputs) == 2
        payment, metadata = outputs
        assert payment["satoshis"] == 100
        assert payment["lockingScript"] == p2pkh_locking_script(ARTICLE["authorPaymentAddress"])
        assert metadata["satoshis"] == 0
        assert metadata["lockingScript"] == unlock_metadata_script("a1", "Test Article", 100)
        assert metadata["lockingScript"].startswith("006a")

    def test_invalid_address(self):
        with pytest.raises(PaymentConstructionError):
            build_unlock_outputs({**ARTICLE, "authorPaymentAddress": "1NotARealAddress"})

    def test_missing_price(self):
        article = dict(ARTICLE)
        del article["price"]

        with pytest.raises(PaymentConstructionError):
            build_unlock_outputs(article)

    def test_negative_price(self):
        with pytest.raises(PaymentConstructionError):
            build_unlock_outputs({**ARTICLE, "price": -1})

    def test_free_article_pays_zero(self):
        payment, metadata = build_unlock_outputs({**ARTICLE, "price": 0})

        assert payment["satoshis"] == 0
        assert payment["lockingScript"] == p2pkh_locking_script(ARTICLE["authorPaymentAddress"])
        assert metadata["lockingScript"] == unlock_metadata_script("a1", "Test Article", 0)


class TestPurchaseArticle:
    def test_returns_txid(self):
        wallet = FakeWallet()

        assert purchase_article(wallet, ARTICLE) == "ab" * 32
        assert wallet.actions[0]["description"] == "Unlock article: Test Article"
        assert len(wallet.actions[0]["outputs"]) == 2

    def test_no_wallet(self):
        with pytest.raises(WalletUnavailableError):
            purchase_article(None, ARTICLE)

    def test_no_txid_returned(self):
        with pytest.raises(PaymentConstructionError):
            purchase_article(FakeWallet(result={}), ARTICLE)

    def test_bad_address_never_reaches_wallet(self):
        wallet = FakeWallet()

        with pytest.raises(PaymentConstructionError):
            purchase_article(wallet, {**ARTICLE, "authorPaymentAddress": "garbage"})

        assert wallet.actions == []


class TestHTTPWalletClient:
    def _response(self, status_code=200, body=None):
        resp = MagicMock()
        resp.status_code = status_code
        resp.json.return_value = body or {}
        resp.text = str(body)
        return resp

    def test_is_authenticated(self):
        with patch("articlepay.client.wallet.requests.post", return_value=self._response(body={"authenticated": True})) as post:
            assert HTTPWalletClient("http://wallet:3321/").is_authenticated() is True

        assert post.call_args[0][0] == "http://wallet:3321/isAuthenticated"

    def test_get_public_key(self):
        body = {"publicKey": "02" + "11" * 32}
        with patch("articlepay.client.wallet.requests.post", return_value=self._response(body=body)) as post:
            assert HTTPWalletClient().get_public_key() == body["publicKey"]

        assert post.call_args[1]["json"] == {"identityKey": True}

    def test_create_action_payload(self):
        outputs = build_unlock_outputs(ARTICLE)
        with patch(
            "articlepay.client.wallet.requests.post", return_value=self._response(body={"txid": "cd" * 32})
        ) as post:
            result = HTTPWalletClient().create_action("Unlock article: Test Article", outputs)

        assert result["txid"] == "cd" * 32
        assert post.call_args[1]["json"] == {"description": "Unlock article: Test Article", "outputs": outputs}

    def test_unreachable_wallet(self):
        with patch("articlepay.client.wallet.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(WalletUnavailableError):
                HTTPWalletClient().is_authenticated()

    def test_error_status(self):
        with patch("articlepay.client.wallet.requests.post", return_value=self._response(status_code=500)):
            with pytest.raises(WalletUnavailableError):
                HTTPWalletClient().get_public_key()
