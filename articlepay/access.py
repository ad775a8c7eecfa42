"""
Access gate for full article content.

A content request moves through a small state machine:

    Unauthenticated --(signature handshake | asserted address)--> Identified
    Unauthenticated --(neither)--> Rejected           AuthenticationRequired
    Identified --(verified purchase covering price)--> Granted
    Identified --(otherwise)--> Denied                PaymentRequired(price)

The terminal failure states are raised as errors; Granted returns the content.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from articlepay.audit_logger import get_audit_logger
from articlepay.database import session_scope
from articlepay.errors import ArticleNotFound, AuthenticationRequired, PaymentRequired
from articlepay.models import Article, Purchase
from articlepay.utils import derive_legacy_address_from_pubkey

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

SIGNATURE_CHANNEL = "signature"
ASSERTED_CHANNEL = "asserted"


@dataclass(frozen=True)
class Identity:
    """Who is asking, and how that was established."""

    value: str
    channel: str
    aliases: Tuple[str, ...] = ()

    @classmethod
    def from_identity_key(cls, pubkey_hex: str) -> "Identity":
        # Purchases made through the payment flow are recorded under the
        # address derived from the key, so the key matches those as well.
        aliases: Tuple[str, ...] = ()
        try:
            aliases = (derive_legacy_address_from_pubkey(pubkey_hex),)
        except RuntimeError as e:
            logger.warning(f"Cannot derive address for identity key: {e}")
        return cls(value=pubkey_hex, channel=SIGNATURE_CHANNEL, aliases=aliases)

    @classmethod
    def from_asserted_address(cls, address: str) -> "Identity":
        return cls(value=address, channel=ASSERTED_CHANNEL)

    @property
    def buyer_identities(self) -> Tuple[str, ...]:
        return (self.value,) + self.aliases


@dataclass(frozen=True)
class ContentGrant:
    article: dict
    txid: str

    def to_response(self) -> dict:
        return {**self.article, "txid": self.txid, "isPurchased": True}


def find_valid_purchase(session, article: Article, identity: Identity) -> Optional[Purchase]:
    """Earliest verified purchase of ``article`` by any of the identity's names that covers the price."""
    return (
        session.query(Purchase)
        .filter(
            Purchase.article_id == article.id,
            Purchase.wallet_address.in_(identity.buyer_identities),
            Purchase.verified.is_(True),
            Purchase.satoshis_paid >= article.price,
        )
        .order_by(Purchase.purchased_at.asc())
        .first()
    )


class AccessGate:
    def open(self, article_id: str, identity: Optional[Identity]) -> ContentGrant:
        """
        Release full content to an identified buyer.

        Raises:
            AuthenticationRequired: no identity was established
            ArticleNotFound: unknown article
            PaymentRequired: no matching verified purchase; carries the price
        """
        if identity is None:
            raise AuthenticationRequired("Authentication required")

        with session_scope() as session:
            article = session.get(Article, article_id)
            if article is None:
                raise ArticleNotFound(article_id)

            purchase = find_valid_purchase(session, article, identity)
            if purchase is None:
                audit_logger.log_content_access(article_id, identity.value, identity.channel, granted=False)
                raise PaymentRequired(article_id, article.price)

            grant = ContentGrant(article=article.to_full_dict(), txid=purchase.txid)

        audit_logger.log_content_access(article_id, identity.value, identity.channel, granted=True)
        return grant
