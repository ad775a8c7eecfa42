"""
Purchase verification.

Records a claimed payment for an article after checking the amount against
the article price and asking the configured confirmer about the transaction.
The unique index on ``purchases.txid`` is what keeps concurrent calls for the
same transaction from producing two rows: the insert is attempted directly
and a losing insert is resolved by reading the winner's row.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from articlepay.audit_logger import get_audit_logger
from articlepay.database import session_scope
from articlepay.errors import ArticleNotFound, InsufficientPayment, PaymentNotConfirmed
from articlepay.models import Article, Purchase
from articlepay.payments.confirmation import ExpectedOutput, TransactionConfirmer
from articlepay.script import p2pkh_locking_script

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


@dataclass(frozen=True)
class PurchaseReceipt:
    txid: str
    article_id: str
    created: bool

    def to_response(self) -> dict:
        # Same body whether or not this call created the row.
        return {"success": True, "txid": self.txid, "message": "Purchase recorded successfully"}


class PurchaseVerifier:
    def __init__(self, confirmer: TransactionConfirmer):
        self.confirmer = confirmer

    def verify(self, article_id: str, txid: str, buyer: str, satoshis_paid: Optional[int]) -> PurchaseReceipt:
        """
        Verify and record a purchase.

        Args:
            article_id: Article being paid for
            txid: Broadcast payment transaction id
            buyer: Wallet address or identity key of the payer
            satoshis_paid: Amount the client claims to have paid

        Raises:
            ArticleNotFound: unknown article
            InsufficientPayment: claimed or stored amount below the price
            PaymentNotConfirmed: the confirmer rejected a new transaction
        """
        paid = satoshis_paid or 0

        with session_scope() as session:
            article = session.get(Article, article_id)
            if article is None:
                raise ArticleNotFound(article_id)
            price = article.price
            payment_address = article.author_payment_address

            if paid < price:
                audit_logger.log_payment_rejected(article_id, txid, "insufficient_claim", price, paid)
                raise InsufficientPayment(required=price, paid=paid)

            existing = session.query(Purchase).filter_by(txid=txid).first()
            if existing is not None:
                return self._accept_existing(existing, article_id, price)

        expected = [ExpectedOutput(p2pkh_locking_script(payment_address), price)]
        if not self.confirmer.confirm(txid, expected):
            audit_logger.log_payment_rejected(article_id, txid, "not_confirmed", price, paid)
            raise PaymentNotConfirmed(txid)

        try:
            with session_scope() as session:
                session.add(
                    Purchase(
                        txid=txid,
                        article_id=article_id,
                        wallet_address=buyer,
                        satoshis_paid=paid,
                        verified=True,
                    )
                )
        except IntegrityError:
            # A concurrent call inserted the same txid first.
            logger.info(f"Purchase {txid} already recorded by a concurrent request")
            with session_scope() as session:
                existing = session.query(Purchase).filter_by(txid=txid).one()
                return self._accept_existing(existing, article_id, price)

        logger.info(f"✅ Purchase recorded: {txid} for article {article_id}")
        audit_logger.log_purchase_recorded(txid, article_id, buyer, paid, created=True)
        return PurchaseReceipt(txid=txid, article_id=article_id, created=True)

    def _accept_existing(self, purchase: Purchase, article_id: str, price: int) -> PurchaseReceipt:
        if purchase.satoshis_paid < price:
            audit_logger.log_payment_rejected(article_id, purchase.txid, "insufficient_stored", price, purchase.satoshis_paid)
            raise InsufficientPayment(
                required=price,
                paid=purchase.satoshis_paid,
                message="Existing purchase has insufficient payment",
            )

        audit_logger.log_purchase_recorded(
            purchase.txid, article_id, purchase.wallet_address, purchase.satoshis_paid, created=False
        )
        return PurchaseReceipt(txid=purchase.txid, article_id=article_id, created=False)
