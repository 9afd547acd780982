"""
Builds the FileBridge Flask app.

``create_app`` wires settings, adapters, domain services and HTTP routes
together; ``shutdown_app`` undoes the process-level parts (janitor
thread, Redis pool, SocketIO server). Tests call both directly.
"""

import atexit
import logging
import time
from typing import Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from filebridge.api.websocket_events import register_socketio_events
from filebridge.application.concurrency_limiter import ConcurrencyLimiter
from filebridge.application.dependency_container import DependencyContainer
from filebridge.application.event_publisher import EventPublisher
from filebridge.application.file_service import FileService
from filebridge.application.transfer_service import TransferService
from filebridge.config.redis_config import close_redis, init_redis
from filebridge.config.settings import AppConfig
from filebridge.config.socketio_config import init_socketio, reset_socketio
from filebridge.domain.events import DomainEvent
from filebridge.domain.file_registry import FileRecordRepository, FileRegistry
from filebridge.domain.file_storage import IFileStorageRepository
from filebridge.domain.text_encoding import TextEncodingService
from filebridge.domain.tokens import (
    BridgeTokenManager,
    DownloadTokenManager,
    IQrCodeRenderer,
    ITokenRepository,
)
from filebridge.infrastructure.event_handlers import (
    LoggingEventHandler,
    WebSocketEventHandler,
)
from filebridge.infrastructure.in_memory_file_record_repository import (
    InMemoryFileRecordRepository,
)
from filebridge.infrastructure.segno_qr_renderer import SegnoQrCodeRenderer
from filebridge.infrastructure.storage_factory import StorageFactory
from filebridge.tasks import TokenJanitor

logger = logging.getLogger(__name__)

_CORS_RULES = {
    r"/api/*": {
        "origins": "*",
        "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type"],
        "expose_headers": ["Content-Type", "Content-Disposition", "Retry-After"],
        "max_age": 3600,
    }
}


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Build a ready-to-serve app from ``config`` (or from the environment).

    Raises:
        ConfigurationError: At least one setting is invalid
    """
    config = (config or AppConfig()).validate()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = Flask(__name__)
    app.config.update(
        MAX_CONTENT_LENGTH=config.max_request_bytes,
        PUBLIC_BASE_URL=config.public_base_url,
        TOKEN_BACKEND=config.tokens.backend,
        RESTX_MASK_SWAGGER=False,
    )
    CORS(app, resources=_CORS_RULES)

    _connect_backends(app, config)
    app.container = _build_container(config)
    _expose_services(app)
    _mount_routes(app, config)
    _add_request_timing(app)

    app.janitor.start()
    atexit.register(shutdown_app, app)
    return app


def _connect_backends(app: Flask, config: AppConfig) -> None:
    # Redis holds token state only when TOKEN_BACKEND=redis
    if config.tokens.backend == "redis":
        reachable = init_redis().health_check()
        logger.log(
            logging.INFO if reachable else logging.WARNING,
            f"Redis token store {'reachable' if reachable else 'not reachable yet'}",
        )

    app.socketio = None
    if not config.socketio_enabled:
        logger.info("Push notifications off; pages poll the file list")
        return
    try:
        app.socketio = init_socketio(app)
        register_socketio_events(app)
    except Exception:
        logger.exception("SocketIO failed to start; continuing without push")


def _build_container(config: AppConfig) -> DependencyContainer:
    limits, tokens = config.limits, config.tokens
    container = DependencyContainer()

    storage = StorageFactory.create_storage(config.storage)
    token_repository = StorageFactory.create_token_repository(tokens)
    records = InMemoryFileRecordRepository()
    encodings = TextEncodingService()

    registry = FileRegistry(
        records,
        storage,
        encodings,
        max_files=limits.max_files,
        max_total_bytes=limits.max_total_bytes,
        max_file_bytes=limits.max_file_bytes,
    )
    downloads = DownloadTokenManager(
        token_repository, registry, ttl_seconds=tokens.download_ttl_seconds
    )
    bridges = BridgeTokenManager(
        token_repository, registry, downloads, ttl_seconds=tokens.bridge_ttl_seconds
    )

    publisher = EventPublisher()
    publisher.subscribe(
        DomainEvent, LoggingEventHandler(logging.getLogger("filebridge.events")).handle
    )
    if config.socketio_enabled:
        publisher.subscribe(DomainEvent, WebSocketEventHandler().handle)

    files = FileService(
        registry,
        publisher,
        upload_limiter=ConcurrencyLimiter("upload", limits.upload_concurrency),
        transcode_limiter=ConcurrencyLimiter("transcode", limits.transcode_concurrency),
    )
    # Evictions happen inside the registry; route them to the publisher
    registry.on_evict = files.publish_evicted

    services = {
        IFileStorageRepository: storage,
        ITokenRepository: token_repository,
        FileRecordRepository: records,
        IQrCodeRenderer: SegnoQrCodeRenderer(),
        TextEncodingService: encodings,
        FileRegistry: registry,
        DownloadTokenManager: downloads,
        BridgeTokenManager: bridges,
        EventPublisher: publisher,
        FileService: files,
        TransferService: TransferService(bridges, downloads, files, publisher),
        TokenJanitor: TokenJanitor(
            token_repository,
            retention_seconds=tokens.retention_seconds,
            interval_seconds=tokens.cleanup_interval_seconds,
        ),
    }
    for key, service in services.items():
        container.register_singleton(key, service)

    logger.info(
        f"Wired {container.singleton_count()} services "
        f"(storage={config.storage.backend}, tokens={tokens.backend})"
    )
    return container


def _expose_services(app: Flask) -> None:
    """Shortcuts used by the route handlers via ``current_app``."""
    resolve = app.container.resolve
    app.file_service = resolve(FileService)
    app.transfer_service = resolve(TransferService)
    app.qr_renderer = resolve(IQrCodeRenderer)
    app.janitor = resolve(TokenJanitor)


def _mount_routes(app: Flask, config: AppConfig) -> None:
    from filebridge.api.pages import pages_bp
    from filebridge.api.responses import health_status
    from filebridge.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    app.register_blueprint(pages_bp)

    @app.route("/health", methods=["GET"])
    def health():
        status = health_status()
        return jsonify(status), 200 if status["status"] == "ok" else 503

    logger.info(f"REST API mounted at /api/{config.api_version}, docs at /api/{config.api_version}/docs")


def _add_request_timing(app: Flask) -> None:
    @app.before_request
    def stamp():
        g.request_started = time.perf_counter()

    @app.after_request
    def report(response):
        started = g.get("request_started")
        took = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            f"{request.method} {request.path} -> {response.status_code} ({took:.1f} ms)"
        )
        return response


def shutdown_app(app: Flask) -> None:
    """Release process-level resources. Calling it again is harmless."""
    janitor = getattr(app, "janitor", None)
    if janitor is not None:
        janitor.stop()
    if app.config.get("TOKEN_BACKEND") == "redis":
        close_redis()
    if getattr(app, "socketio", None) is not None:
        reset_socketio()
        app.socketio = None
