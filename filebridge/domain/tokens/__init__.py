"""Bridge sessions and download grants."""

from .entities import (
    BridgeKind,
    BridgeSession,
    DownloadGrant,
    TokenKind,
    TokenRecord,
    TokenState,
    check_usable,
    generate_token,
    token_prefix,
)
from .qr_code import IQrCodeRenderer
from .repositories import ITokenRepository
from .services import BridgeTokenManager, DownloadHandle, DownloadTokenManager

__all__ = [
    "BridgeKind",
    "BridgeSession",
    "BridgeTokenManager",
    "DownloadGrant",
    "DownloadHandle",
    "DownloadTokenManager",
    "IQrCodeRenderer",
    "ITokenRepository",
    "TokenKind",
    "TokenRecord",
    "TokenState",
    "check_usable",
    "generate_token",
    "token_prefix",
]
