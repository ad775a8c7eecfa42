"""Exceptions raised by the articlepay client library."""

from typing import Any, Dict, Optional, Type


class WalletUnavailableError(Exception):
    """No wallet agent is reachable, or it refused to authenticate."""

    pass


class PaymentConstructionError(Exception):
    """The unlock transaction could not be built or the wallet returned no txid."""

    pass


class NoAuthChannelAvailable(Exception):
    """Neither a signing agent, a wallet auth_fetch, nor a buyer address is available."""

    pass


class APIError(Exception):
    """Non-2xx response from the articlepay backend."""

    def __init__(self, status_code: int, body: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.body = body or {}
        message = self.body.get("message") or self.body.get("error") or f"HTTP {status_code}"
        super().__init__(message)

    @property
    def error(self) -> Optional[str]:
        return self.body.get("error")


class ValidationFailed(APIError):
    pass


class AuthenticationError(APIError):
    pass


class InsufficientPaymentError(APIError):
    """402: paid amount below price, or the payment is not confirmed."""

    @property
    def required(self) -> Optional[int]:
        return self.body.get("required")

    @property
    def paid(self) -> Optional[int]:
        return self.body.get("paid")


class PaymentRequiredError(APIError):
    """403: no qualifying purchase for this identity."""

    @property
    def price(self) -> Optional[int]:
        return self.body.get("price")


class NotFoundError(APIError):
    pass


_STATUS_ERRORS: Dict[int, Type[APIError]] = {
    400: ValidationFailed,
    401: AuthenticationError,
    402: InsufficientPaymentError,
    403: PaymentRequiredError,
    404: NotFoundError,
}


def error_for_status(status_code: int, body: Optional[Dict[str, Any]] = None) -> APIError:
    """Map an HTTP status to the matching APIError subclass."""
    return _STATUS_ERRORS.get(status_code, APIError)(status_code, body)
