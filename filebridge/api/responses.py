"""
Response Helpers

Shared by the REST namespaces and the browser pages: absolute URLs for
phone-facing links, token payloads and the exception-to-response mapping.
"""

from typing import Any, Dict

from flask import current_app, request
from werkzeug.exceptions import RequestEntityTooLarge

from ..config.redis_config import is_redis_initialized, redis_health_check
from ..config.socketio_config import is_socketio_enabled
from ..domain.errors import (
    DomainError,
    ErrorCategory,
    ServiceBusyError,
    create_error_response,
    error_response_for,
)
from ..domain.tokens.entities import BridgeSession, DownloadGrant


def public_origin() -> str:
    """Configured PUBLIC_BASE_URL, else the origin the request came in on."""
    configured = current_app.config.get("PUBLIC_BASE_URL")
    if configured:
        return configured
    return request.host_url.rstrip("/")


def display_url(session: BridgeSession) -> str:
    """Phone page a bridge QR code points to."""
    return f"{public_origin()}/m/{session.kind.value}/{session.token}"


def qr_url(token: str) -> str:
    return f"{public_origin()}/qrcode/{token}.png"


def download_url(token: str) -> str:
    return f"{public_origin()}/dl/{token}"


def bridge_payload(session: BridgeSession) -> Dict[str, Any]:
    return {
        "token": session.token,
        "display_url": display_url(session),
        "qr_url": qr_url(session.token),
        "expires_at": session.expires_at.isoformat(),
    }


def grant_payload(grant: DownloadGrant) -> Dict[str, Any]:
    return {
        "token": grant.token,
        "download_url": download_url(grant.token),
        "expires_at": grant.expires_at.isoformat(),
    }


def api_error_response(tag: str, error: Exception):
    """
    Map an exception raised by a service call to an API response.

    Domain errors keep their category; a full limiter answers 503 with
    Retry-After; anything else is logged with its traceback and reported
    as a system error.

    Returns:
        ``(body, status)`` or ``(body, status, headers)``
    """
    if isinstance(error, ServiceBusyError):
        current_app.logger.warning(f"{tag} Busy: {error.technical_message}")
        return (
            error.to_dict(),
            error.http_status_code,
            {"Retry-After": str(error.retry_after)},
        )

    if isinstance(error, RequestEntityTooLarge):
        current_app.logger.warning(f"{tag} Request body too large")
        return create_error_response(
            ErrorCategory.FILE_TOO_LARGE,
            f"Request exceeds {current_app.config.get('MAX_CONTENT_LENGTH')} bytes",
        )

    if isinstance(error, DomainError):
        current_app.logger.info(
            f"{tag} {error.__class__.__name__}: {error}"
        )
        return error_response_for(error)

    current_app.logger.exception(f"{tag} Unexpected error: {error}")
    return create_error_response(ErrorCategory.SYSTEM_ERROR, "Unexpected server error")


def health_status() -> Dict[str, Any]:
    """
    Health summary for monitoring.

    Degraded only when Redis holds the token state and is unreachable.
    """
    stats = current_app.file_service.stats()
    token_backend = current_app.config.get("TOKEN_BACKEND", "memory")

    if is_redis_initialized():
        redis_status = "connected" if redis_health_check() else "disconnected"
    else:
        redis_status = "not configured"

    status = "ok"
    if token_backend == "redis" and redis_status != "connected":
        status = "degraded"

    return {
        "status": status,
        "files": stats.file_count,
        "total_bytes": stats.total_bytes,
        "token_backend": token_backend,
        "redis": redis_status,
        "socketio": "enabled" if is_socketio_enabled() else "disabled",
    }
