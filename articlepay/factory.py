"""
Application Factory for articlepay

Implements the Flask application factory pattern with:
- Blueprint registration
- Security configuration (TLS, headers, rate limits)
- Database and cache initialization
- Payment confirmer selection
- JSON error handling
"""

import logging
from typing import Any, Mapping, Optional

from flask import Flask, jsonify, request

from articlepay import metrics
from articlepay.audit_logger import get_audit_logger, init_audit_logger
from articlepay.config import get_config, validate_config
from articlepay.database import init_all
from articlepay.errors import ArticlePayError
from articlepay.payments.confirmation import TransactionConfirmer, build_confirmer
from articlepay.payments.verifier import PurchaseVerifier
from articlepay.security import init_security
from articlepay.utils import secure_random_hex

logger = logging.getLogger(__name__)


def create_app(
    config_override: Optional[Mapping[str, Any]] = None,
    confirmer: Optional[TransactionConfirmer] = None,
) -> Flask:
    """
    Create and configure the Flask application using the factory pattern.

    Args:
        config_override: Optional configuration values layered over the environment
        confirmer: Optional transaction confirmer; defaults to PAYMENT_CONFIRMER

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    cfg = dict(get_config())
    if config_override:
        cfg.update(config_override)
    validate_config(cfg)
    app.config["APP_CONFIG"] = cfg

    # Set Flask secret key (required for sessions)
    secret_key = cfg.get("FLASK_SECRET_KEY")
    if not secret_key:
        logger.warning("FLASK_SECRET_KEY not set; using an ephemeral key")
        secret_key = secure_random_hex()
    app.secret_key = secret_key

    # Initialize security middleware (Talisman, rate limiting, logging)
    init_security(app, cfg)

    # Initialize database and cache connections
    try:
        init_all(cfg)
        init_audit_logger()
        logger.info("✅ Database, cache, and audit logging initialized")
    except Exception as e:
        logger.error(f"❌ Infrastructure initialization failed: {e}")
        raise

    app.extensions["purchase_verifier"] = PurchaseVerifier(confirmer or build_confirmer(cfg))
    logger.info(f"Payment confirmer: {cfg.get('PAYMENT_CONFIRMER', 'trust')}")

    register_blueprints(app)
    register_error_handlers(app)
    register_request_handlers(app)

    logger.info("🚀 Application factory completed successfully")
    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    prefix = app.config["APP_CONFIG"].get("API_PREFIX") or None

    # Catalogue, purchase verification, gated content
    from articlepay.blueprints.articles import articles_bp

    app.register_blueprint(articles_bp, url_prefix=prefix)

    # Signature handshake challenges
    from articlepay.blueprints.auth import auth_bp

    app.register_blueprint(auth_bp, url_prefix=prefix)

    # Admin/operations blueprint (health, metrics)
    from articlepay.blueprints.admin import admin_bp

    app.register_blueprint(admin_bp)

    logger.info("✅ All blueprints registered")


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    @app.errorhandler(ArticlePayError)
    def domain_error(e: ArticlePayError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "bad_request", "message": str(e)}), 400

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"error": "unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "forbidden", "message": "Access denied"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "method_not_allowed", "message": str(e)}), 405

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        get_audit_logger().log_rate_limit_exceeded(request.remote_addr or "-", request.path)
        return jsonify({"error": "rate_limit_exceeded", "message": str(e)}), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Internal server error: {e}", exc_info=True)
        get_audit_logger().log_error("internal_error", str(e), {"path": request.path})
        return jsonify({"error": "internal_error", "message": "An unexpected error occurred"}), 500


def register_request_handlers(app: Flask) -> None:
    """Register before/after request handlers."""

    @app.after_request
    def count_request(response):
        endpoint = request.url_rule.rule if request.url_rule else "unmatched"
        metrics.request_counter.labels(
            method=request.method, endpoint=endpoint, status=str(response.status_code)
        ).inc()
        return response

    @app.teardown_appcontext
    def cleanup(error=None):
        """Cleanup resources after request."""
        if error:
            logger.error(f"Request cleanup with error: {error}")
        # Sessions are closed by session_scope; connections are pooled
