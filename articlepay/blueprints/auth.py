"""
Authentication Blueprint - Signature Handshake Challenges

Issues the single-use nonces that signed content requests must carry.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from articlepay.audit_logger import get_audit_logger
from articlepay.handshake import IDENTITY_HEADER, NONCE_HEADER, SIGNATURE_HEADER, issue_challenge
from articlepay.security import limiter

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

auth_bp = Blueprint("auth", __name__)


def _challenge_rate_limit() -> str:
    return current_app.config["APP_CONFIG"].get("CHALLENGE_RATE_LIMIT", "30 per minute")


@auth_bp.route("/auth/challenge", methods=["POST"])
@limiter.limit(_challenge_rate_limit)
def create_challenge():
    """
    Issue a handshake nonce.

    Returns:
        JSON with the nonce, its lifetime and the headers a signed request needs
    """
    nonce, ttl = issue_challenge()

    audit_logger.log_event("auth.challenge_issued", ip=request.remote_addr)

    return jsonify(
        {
            "nonce": nonce,
            "expiresIn": ttl,
            "headers": {
                "identityKey": IDENTITY_HEADER,
                "nonce": NONCE_HEADER,
                "signature": SIGNATURE_HEADER,
            },
            "message": "Sign sha256('{nonce}:{METHOD}:{path}') with your identity key",
        }
    )
