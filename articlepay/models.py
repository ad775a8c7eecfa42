"""
SQLAlchemy database models for articlepay.

Articles are seeded once and never updated through the API; purchases are
written by the purchase verifier and keyed by the payment transaction id.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utc_now():
    """Generate timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


class Article(Base):
    """
    Pay-per-article content. ``full_content`` is only released by the access gate.
    """

    __tablename__ = "articles"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    author_payment_address = Column(String(64), nullable=False)  # Base58Check P2PKH address
    subject = Column(String(255), nullable=False)
    word_count = Column(Integer, nullable=False, default=0)
    price = Column(Integer, nullable=False)  # satoshis
    preview = Column(Text, nullable=False)
    full_content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    purchases = relationship("Purchase", back_populates="article")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_article_price_non_negative"),
        CheckConstraint("word_count >= 0", name="ck_article_word_count_non_negative"),
        Index("idx_article_created", "created_at"),
    )

    def to_public_dict(self) -> dict:
        """Article metadata without the gated content."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "subject": self.subject,
            "wordCount": self.word_count,
            "price": self.price,
            "preview": self.preview,
            "authorPaymentAddress": self.author_payment_address,
        }

    def to_full_dict(self) -> dict:
        data = self.to_public_dict()
        data["fullContent"] = self.full_content
        return data

    def __repr__(self):
        return f"<Article(id={self.id}, price={self.price})>"


class Purchase(Base):
    """
    A recorded payment for an article.

    ``wallet_address`` holds whatever identity the buyer presented: a wallet
    address on the trust-based path or an identity key on the signed path.
    """

    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    txid = Column(String(64), nullable=False)
    article_id = Column(String(64), ForeignKey("articles.id"), nullable=False)
    wallet_address = Column(String(130), nullable=False)
    satoshis_paid = Column(Integer, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    purchased_at = Column(DateTime, default=utc_now, nullable=False)

    article = relationship("Article", back_populates="purchases")

    __table_args__ = (
        CheckConstraint("satoshis_paid >= 0", name="ck_purchase_paid_non_negative"),
        Index("uq_purchase_txid", "txid", unique=True),
        Index("idx_purchase_buyer_article", "wallet_address", "article_id"),
        Index("idx_purchase_purchased_at", "purchased_at"),
    )

    def to_dict(self) -> dict:
        return {
            "txid": self.txid,
            "articleId": self.article_id,
            "walletAddress": self.wallet_address,
            "satoshisPaid": self.satoshis_paid,
            "verified": self.verified,
            "purchasedAt": _isoformat(self.purchased_at),
        }

    def __repr__(self):
        return f"<Purchase(txid={self.txid[:16]}..., article={self.article_id})>"
