"""Build and submit the two-output unlock transaction for an article."""

import logging
from typing import Any, Dict, List, Mapping

from articlepay.client.exceptions import PaymentConstructionError, WalletUnavailableError
from articlepay.script import p2pkh_locking_script, unlock_metadata_script

logger = logging.getLogger(__name__)


def build_unlock_outputs(article: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Outputs for an article purchase.

    The first pays ``price`` satoshis to the author's address; the second is a
    zero-value data carrier tagging the transaction with the article.

    Args:
        article: Public article record (camelCase keys, as served by the API)

    Raises:
        PaymentConstructionError: Missing fields, a negative price or an undecodable payment address
    """
    try:
        address = article["authorPaymentAddress"]
        price = int(article["price"])
        article_id = str(article["id"])
        title = article["title"]
    except (KeyError, TypeError, ValueError) as e:
        raise PaymentConstructionError(f"Article record is incomplete: {e}") from e

    if price < 0:
        raise PaymentConstructionError(f"Article price cannot be negative (got {price})")

    try:
        payment_script = p2pkh_locking_script(address)
    except ValueError as e:
        raise PaymentConstructionError(f"Invalid payment address {address!r}: {e}") from e

    return [
        {
            "lockingScript": payment_script,
            "satoshis": price,
            "outputDescription": f"Article payment to {article.get('author', address)}",
        },
        {
            "lockingScript": unlock_metadata_script(article_id, title, price),
            "satoshis": 0,
            "outputDescription": f'Article unlock metadata for "{title}"',
        },
    ]


def purchase_article(wallet, article: Mapping[str, Any]) -> str:
    """
    Pay for an article through the wallet and return the broadcast txid.

    Raises:
        WalletUnavailableError: The wallet is missing or unreachable
        PaymentConstructionError: Bad outputs, or the wallet returned no txid
    """
    if wallet is None:
        raise WalletUnavailableError("No wallet connected")

    outputs = build_unlock_outputs(article)
    logger.info(f"Sending payment to writer at: {article['authorPaymentAddress']}")

    result = wallet.create_action(description=f"Unlock article: {article['title']}", outputs=outputs)
    txid = (result or {}).get("txid")
    if not txid:
        raise PaymentConstructionError("Transaction was created but no txid was returned")

    logger.info(f"Article {article['id']} paid in {txid}")
    return txid
