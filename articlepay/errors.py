"""
Server-side error taxonomy.

Each error knows its HTTP status and renders to the JSON body the API returns,
including whatever context (required price, paid amount) the client needs to
correct the request.
"""

from typing import Any, Dict


class ArticlePayError(Exception):
    """Base class for errors surfaced through the HTTP API."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.context}


class ValidationError(ArticlePayError):
    status_code = 400
    error = "validation_error"


class ArticleNotFound(ArticlePayError):
    status_code = 404
    error = "not_found"

    def __init__(self, article_id: str):
        super().__init__("Article not found", articleId=article_id)
        self.article_id = article_id


class InsufficientPayment(ArticlePayError):
    """Amount paid is below the article price. Carries both figures."""

    status_code = 402
    error = "insufficient_payment"

    def __init__(self, required: int, paid: int, message: str = "Payment amount insufficient"):
        super().__init__(message, required=required, paid=paid)
        self.required = required
        self.paid = paid


class PaymentNotConfirmed(ArticlePayError):
    status_code = 402
    error = "payment_not_confirmed"

    def __init__(self, txid: str):
        super().__init__("Transaction could not be confirmed on-chain", txid=txid)
        self.txid = txid


class AuthenticationRequired(ArticlePayError):
    status_code = 401
    error = "authentication_required"


class PaymentRequired(ArticlePayError):
    """Caller is identified but holds no valid purchase for the article."""

    status_code = 403
    error = "payment_required"

    def __init__(self, article_id: str, price: int):
        super().__init__(
            "Access denied. You must purchase this article first.",
            articleId=article_id,
            price=price,
        )
        self.article_id = article_id
        self.price = price
