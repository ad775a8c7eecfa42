"""
Articles Blueprint - Catalogue, Purchase Verification, and Gated Content

Public routes return article metadata only. Full content is released by the
access gate to callers who prove (or, on the fallback route, assert) the
identity that paid for the article.
"""

import logging
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from articlepay import metrics
from articlepay.access import SIGNATURE_CHANNEL, AccessGate, Identity
from articlepay.audit_logger import get_audit_logger
from articlepay.database import session_scope
from articlepay.errors import ArticleNotFound, ArticlePayError, AuthenticationRequired, ValidationError
from articlepay.handshake import IDENTITY_HEADER, NONCE_HEADER, SIGNATURE_HEADER, require_signature
from articlepay.models import Article, Purchase
from articlepay.rendering import markdown_to_html
from articlepay.security import limiter

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

articles_bp = Blueprint("articles", __name__)

access_gate = AccessGate()


def _verify_rate_limit() -> str:
    return current_app.config["APP_CONFIG"].get("VERIFY_RATE_LIMIT", "10 per minute")


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def _content_response(grant):
    body = grant.to_response()
    if request.args.get("format") == "html":
        body["contentHtml"] = markdown_to_html(body.get("fullContent", ""))
    return jsonify(body)


def _open(article_id: str, identity: Identity):
    try:
        grant = access_gate.open(article_id, identity)
    except ArticlePayError as e:
        metrics.content_access.labels(channel=identity.channel, outcome=e.error).inc()
        raise
    metrics.content_access.labels(channel=identity.channel, outcome="granted").inc()
    return grant


def _count_handshake_rejections(view):
    """Record failed handshakes on the signed route as access outcomes."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except AuthenticationRequired as e:
            metrics.content_access.labels(channel=SIGNATURE_CHANNEL, outcome=e.error).inc()
            raise

    return wrapper


@articles_bp.route("/articles", methods=["GET"])
def list_articles():
    """
    List all articles, newest first, without full content.
    """
    with session_scope() as session:
        articles = session.query(Article).order_by(Article.created_at.desc(), Article.id.asc()).all()
        body = [{**article.to_public_dict(), "isPurchased": False} for article in articles]
    return jsonify(body)


@articles_bp.route("/articles/purchases/<wallet_address>", methods=["GET"])
def list_purchases(wallet_address: str):
    """
    List purchase records for a buyer identity, newest first.
    """
    with session_scope() as session:
        purchases = (
            session.query(Purchase)
            .filter_by(wallet_address=wallet_address)
            .order_by(Purchase.purchased_at.desc())
            .all()
        )
        body = [purchase.to_dict() for purchase in purchases]

    logger.info(f"Found {len(body)} purchases for {wallet_address}")
    return jsonify(body)


@articles_bp.route("/articles/<article_id>", methods=["GET"])
def get_article(article_id: str):
    """
    Single article preview; full content is never included.
    """
    with session_scope() as session:
        article = session.get(Article, article_id)
        if article is None:
            raise ArticleNotFound(article_id)
        body = article.to_public_dict()
    return jsonify(body)


@articles_bp.route("/articles/<article_id>/verify-purchase", methods=["POST"])
@limiter.limit(_verify_rate_limit)
def verify_purchase(article_id: str):
    """
    Record a payment for an article.

    Expected JSON body:
        - txid: Broadcast transaction id
        - walletAddress: Buyer identity
        - satoshisPaid: Amount paid, in satoshis

    Returns:
        JSON ``{success, txid, message}``; never the content itself
    """
    data = request.get_json(silent=True) or {}
    txid = _text(data, "txid")
    wallet_address = _text(data, "walletAddress")
    satoshis_paid = data.get("satoshisPaid")

    if not txid or not wallet_address:
        raise ValidationError("Missing txid or walletAddress")

    if satoshis_paid is not None and (isinstance(satoshis_paid, bool) or not isinstance(satoshis_paid, int)):
        raise ValidationError("satoshisPaid must be an integer number of satoshis")

    verifier = current_app.extensions["purchase_verifier"]
    try:
        receipt = verifier.verify(article_id, txid, wallet_address, satoshis_paid)
    except ArticlePayError as e:
        metrics.purchase_verifications.labels(outcome=e.error).inc()
        raise

    metrics.purchase_verifications.labels(outcome="created" if receipt.created else "existing").inc()
    return jsonify(receipt.to_response())


@articles_bp.route("/articles/<article_id>/content", methods=["GET"])
@_count_handshake_rejections
@require_signature
def get_content(article_id: str):
    """
    Full article content for a caller authenticated by signature handshake.
    """
    logger.info(f"🔐 Authenticated request for article {article_id} from {g.identity.value}")
    return _content_response(_open(article_id, g.identity))


@articles_bp.route("/articles/<article_id>/content", methods=["POST"])
def post_content(article_id: str):
    """
    Trust-based fallback for wallets that cannot sign requests.

    SECURITY NOTE: the wallet address in the body is taken at face value.

    Expected JSON body:
        - walletAddress: Buyer identity the purchase was recorded under
    """
    data = request.get_json(silent=True) or {}
    wallet_address = _text(data, "walletAddress")

    logger.warning(f"⚠️ FALLBACK: Trust-based request for article {article_id} from {wallet_address or '-'}")

    if not wallet_address:
        raise ValidationError("Wallet address required")

    audit_logger.log_security_event(
        "trust_based_content_request",
        "low",
        {"articleId": article_id, "walletAddress": wallet_address, "ip": request.remote_addr},
    )

    return _content_response(_open(article_id, Identity.from_asserted_address(wallet_address)))


@articles_bp.route("/articles/<article_id>/info", methods=["GET"])
def access_info(article_id: str):
    """
    Describe how to reach the signed content endpoint for an article.
    """
    with session_scope() as session:
        article = session.get(Article, article_id)
        if article is None:
            raise ArticleNotFound(article_id)
        summary = article.to_public_dict()

    prefix = current_app.config["APP_CONFIG"].get("API_PREFIX", "")
    return jsonify(
        {
            "articleId": article_id,
            "title": summary["title"],
            "author": summary["author"],
            "price": summary["price"],
            "paymentAddress": summary["authorPaymentAddress"],
            "signedAccess": {
                "enabled": True,
                "endpoint": f"{prefix}/articles/{article_id}/content",
                "method": "GET",
                "challengeEndpoint": f"{prefix}/auth/challenge",
                "headers": [IDENTITY_HEADER, NONCE_HEADER, SIGNATURE_HEADER],
                "authentication": "secp256k1 signature over sha256('{nonce}:{METHOD}:{path}')",
            },
            "usage": {
                "description": "Signed endpoint for authenticated content access",
                "steps": [
                    "1. Purchase the article and record it with verify-purchase",
                    "2. Request a challenge nonce and sign it with your identity key",
                    "3. Call the content endpoint with the signature headers",
                ],
            },
        }
    )
