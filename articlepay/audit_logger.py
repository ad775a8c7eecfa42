"""
Audit logging for articlepay.

Payment and access decisions are written to the ``audit`` logger as
pipe-delimited lines so they can be grepped or shipped to a log aggregator.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_logger = logging.getLogger("audit")
_audit_logger = None  # Will be initialized by init_audit_logger


def init_audit_logger():
    """Initialize the audit logger."""
    global _audit_logger

    _logger.setLevel(logging.INFO)

    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - AUDIT - %(levelname)s - %(message)s"))
        _logger.addHandler(handler)

    _audit_logger = AuditLogger()

    _logger.info("Audit logger initialized")


def get_audit_logger():
    """Get the audit logger instance."""
    global _audit_logger

    if _audit_logger is None:
        init_audit_logger()
    return _audit_logger


def _short(identity: Optional[str]) -> str:
    if not identity:
        return "-"
    return identity if len(identity) <= 20 else f"{identity[:16]}..."


class AuditLogger:
    """
    Audit logging interface for payment and access events.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or _logger

    def log_event(self, event: str, **details: Any) -> None:
        """Generic structured audit event."""

        payload = {"event": event, **details, "timestamp": datetime.now(timezone.utc).isoformat()}
        self.logger.info(json.dumps(payload, default=str))

    def log_auth_attempt(self, identity: str, method: str, success: bool, ip_address: Optional[str] = None):
        """Log authentication attempt."""
        status = "SUCCESS" if success else "FAILURE"
        self.logger.info(f"AUTH_ATTEMPT | identity={_short(identity)} | method={method} | status={status} | ip={ip_address}")

    def log_signature_verification(self, pubkey: str, success: bool, reason: Optional[str] = None):
        """Log handshake signature verification."""
        status = "SUCCESS" if success else "FAILURE"
        msg = f"SIG_VERIFY | pubkey={_short(pubkey)} | status={status}"
        if reason:
            msg += f" | reason={reason}"
        self.logger.info(msg)

    def log_purchase_recorded(self, txid: str, article_id: str, buyer: str, satoshis: int, created: bool):
        """Log a verify-purchase call that ended in success."""
        outcome = "CREATED" if created else "EXISTING"
        self.logger.info(
            f"PURCHASE_RECORDED | txid={txid} | article={article_id} | buyer={_short(buyer)} "
            f"| satoshis={satoshis} | outcome={outcome}"
        )

    def log_payment_rejected(self, article_id: str, txid: Optional[str], reason: str, required: int, paid: int):
        """Log a verify-purchase call that was refused."""
        self.logger.warning(
            f"PAYMENT_REJECTED | article={article_id} | txid={txid} | reason={reason} "
            f"| required={required} | paid={paid}"
        )

    def log_content_access(self, article_id: str, identity: str, channel: str, granted: bool):
        """Log an access gate decision."""
        status = "GRANTED" if granted else "DENIED"
        self.logger.info(
            f"CONTENT_ACCESS | article={article_id} | identity={_short(identity)} | channel={channel} | status={status}"
        )

    def log_security_event(self, event_type: str, severity: str, details: Dict[str, Any]):
        """Log security event."""
        self.logger.warning(f"SECURITY_EVENT | type={event_type} | severity={severity} | details={details}")

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str):
        """Log rate limit violation."""
        self.logger.warning(f"RATE_LIMIT_EXCEEDED | ip={ip_address} | endpoint={endpoint}")

    def log_error(self, error_type: str, error_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log application error."""
        msg = f"ERROR | type={error_type} | msg={error_msg}"
        if context:
            msg += f" | context={context}"
        self.logger.error(msg)
