"""
Admin Blueprint - Health Checks and Metrics

Provides monitoring and operational endpoints for infrastructure health.
"""

import logging
import time
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from articlepay.database import check_database_health, check_redis_health, get_redis
from articlepay.metrics import registry

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/health")
def health():
    """
    Comprehensive health check endpoint.

    Returns:
        JSON health status with service information
    """
    cfg = current_app.config.get("APP_CONFIG", {})
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": time.time(),
        "service": cfg.get("APP_NAME", "articlepay"),
        "version": cfg.get("APP_VERSION"),
        "components": {
            "payment_confirmer": {"mode": cfg.get("PAYMENT_CONFIRMER", "trust")},
        },
    }

    database = check_database_health()
    health_status["components"]["database"] = database
    if database["status"] != "healthy":
        health_status["status"] = "degraded"

    # Redis is optional
    if get_redis() is not None:
        health_status["components"]["redis"] = check_redis_health()
    else:
        health_status["components"]["redis"] = {"status": "optional_unavailable"}

    return jsonify(health_status), 200 if health_status["status"] == "healthy" else 503


@admin_bp.route("/health/live")
def liveness():
    """
    Liveness probe - checks if app is running.
    """
    return jsonify({"status": "alive"}), 200


@admin_bp.route("/health/ready")
def readiness():
    """
    Readiness probe - the database must answer.
    """
    database = check_database_health()
    if database["status"] != "healthy":
        return jsonify({"status": "not_ready", "database": database}), 503
    return jsonify({"status": "ready"}), 200


@admin_bp.route("/metrics")
def metrics():
    """Prometheus metrics in text exposition format."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
