"""
Token Services

Domain services issuing and consuming bridge sessions and download grants.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import BinaryIO, Callable, Tuple

from ..clock import utc_now
from ..errors import NotFoundError, TokenNotFoundError
from ..file_registry.entities import FileRecord
from ..file_registry.services import FileRegistry
from .entities import (
    BridgeKind,
    BridgeSession,
    DownloadGrant,
    TokenKind,
    TokenRecord,
    check_usable,
    token_prefix,
)
from .repositories import ITokenRepository

logger = logging.getLogger(__name__)


@dataclass
class DownloadHandle:
    """An open file stream plus the metadata needed to serve it."""
    record: FileRecord
    stream: BinaryIO

    def close(self) -> None:
        self.stream.close()


class DownloadTokenManager:
    """
    Issues and redeems single-use download grants.

    A grant turns "this caller may fetch file X" into a short-lived bearer
    URL, so permanent file ids never appear in shareable links.
    """

    def __init__(
        self,
        token_repository: ITokenRepository,
        file_registry: FileRegistry,
        ttl_seconds: float = 60,
        clock: Callable[[], datetime] = utc_now,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.token_repo = token_repository
        self.file_registry = file_registry
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue_for_file(self, file_id: str) -> DownloadGrant:
        """
        Mint a grant for an existing file.

        Raises:
            NotFoundError: If the file does not exist
        """
        if not self.file_registry.exists(file_id):
            raise NotFoundError(f"File not found: {file_id}")

        record = TokenRecord.issue(
            TokenKind.DOWNLOAD, self._clock(), self.ttl_seconds, file_id=file_id
        )
        self.token_repo.add(record)
        logger.debug(f"Issued download grant {token_prefix(record.token)} for {file_id}")
        return DownloadGrant.from_record(record)

    def redeem(self, token: str) -> DownloadHandle:
        """
        Consume a grant and open its file.

        The grant is consumed before the file is opened; a grant whose file
        has since been deleted is spent and reports NotFoundError.

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
            NotFoundError: The file was deleted after the grant was issued
        """
        record = self.token_repo.consume(token, TokenKind.DOWNLOAD, self._clock())
        file_record, stream = self.file_registry.open(record.file_id)
        return DownloadHandle(record=file_record, stream=stream)


class BridgeTokenManager:
    """
    Coordinates handoffs between a desktop session and a second device.

    The second device arrives with nothing but the token, so every token
    is single-use and short-lived:

    - an upload bridge is consumed by the upload it authorizes; a failed
      upload releases it for retry
    - a download bridge can be inspected any number of times; it is
      consumed when exchanged for a download grant
    """

    def __init__(
        self,
        token_repository: ITokenRepository,
        file_registry: FileRegistry,
        download_manager: DownloadTokenManager,
        ttl_seconds: float = 300,
        clock: Callable[[], datetime] = utc_now,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.token_repo = token_repository
        self.file_registry = file_registry
        self.download_manager = download_manager
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue_upload_bridge(self) -> BridgeSession:
        """Issue a bridge that lets a second device upload one file."""
        return self._issue(TokenKind.BRIDGE_UPLOAD)

    def issue_download_bridge(self, file_id: str) -> BridgeSession:
        """
        Issue a bridge that lets a second device download ``file_id``.

        Raises:
            NotFoundError: If the file does not exist
        """
        if not self.file_registry.exists(file_id):
            raise NotFoundError(f"File not found: {file_id}")
        return self._issue(TokenKind.BRIDGE_DOWNLOAD, file_id)

    def inspect(self, token: str, kind: BridgeKind) -> BridgeSession:
        """
        Check that a bridge of ``kind`` is still usable, without consuming it.

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
        """
        record = check_usable(
            self.token_repo.get(token), kind.token_kind, self._clock()
        )
        return BridgeSession.from_record(record)

    def peek(self, token: str) -> BridgeSession:
        """
        Resolve a usable bridge of either kind (used for QR rendering).

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
        """
        record = self.token_repo.get(token)
        if record is None or record.kind is TokenKind.DOWNLOAD:
            raise TokenNotFoundError("Token not found")
        check_usable(record, record.kind, self._clock())
        return BridgeSession.from_record(record)

    def resolve_for_download_info(self, token: str) -> FileRecord:
        """
        Metadata of the file behind a download bridge. Repeatable; does not consume.

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
            NotFoundError: The file was deleted after the bridge was issued
        """
        session = self.inspect(token, BridgeKind.DOWNLOAD)
        return self.file_registry.get(session.target_file_id)

    def consume_upload(
        self, token: str, filename: str, stream: BinaryIO
    ) -> Tuple[FileRecord, BridgeSession]:
        """
        Create a file through an upload bridge.

        The token is reserved before any bytes are stored, so a concurrent
        second attempt fails immediately with TokenAlreadyConsumedError.
        It is committed only if the file was created; otherwise it is
        released and the error propagates.

        Returns:
            The created FileRecord and the consumed session

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
            Any error of FileRegistry.create
        """
        reserved = self.token_repo.reserve(
            token, TokenKind.BRIDGE_UPLOAD, self._clock()
        )
        try:
            file_record = self.file_registry.create(filename, stream)
        except Exception:
            self.token_repo.release(token)
            logger.info(f"Released upload bridge {token_prefix(token)} after failed upload")
            raise

        self.token_repo.commit(token)
        return file_record, replace(BridgeSession.from_record(reserved), consumed=True)

    def consume_download(self, token: str) -> Tuple[DownloadGrant, BridgeSession]:
        """
        Exchange a download bridge for a single-use download grant.

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
            NotFoundError: The file was deleted after the bridge was issued
        """
        reserved = self.token_repo.reserve(
            token, TokenKind.BRIDGE_DOWNLOAD, self._clock()
        )
        try:
            grant = self.download_manager.issue_for_file(reserved.file_id)
        except Exception:
            self.token_repo.release(token)
            raise

        self.token_repo.commit(token)
        return grant, replace(BridgeSession.from_record(reserved), consumed=True)

    def _issue(self, kind: TokenKind, file_id: str = None) -> BridgeSession:
        record = TokenRecord.issue(kind, self._clock(), self.ttl_seconds, file_id=file_id)
        self.token_repo.add(record)
        logger.debug(
            f"Issued {kind.value} bridge {token_prefix(record.token)} "
            f"expiring at {record.expires_at.isoformat()}"
        )
        return BridgeSession.from_record(record)
