"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields

from . import api

# =============================================================================
# Request Models
# =============================================================================

rename_request = api.model(
    "RenameRequest",
    {
        "name": fields.String(
            required=True, description="New display name", example="notes.txt"
        )
    },
)

transcode_request = api.model(
    "TranscodeRequest",
    {
        "source_encoding": fields.String(
            description="Current encoding, or 'auto' to detect it",
            default="auto",
            example="auto",
        ),
        "target_encoding": fields.String(
            required=True, description="Encoding to convert to", example="UTF-8"
        ),
        "strict": fields.Boolean(
            description="Fail instead of replacing unrepresentable characters with '?'",
            default=False,
        ),
    },
)

download_bridge_request = api.model(
    "DownloadBridgeRequest",
    {
        "file_id": fields.String(
            required=True, description="File offered to the second device"
        )
    },
)

# =============================================================================
# Response Models
# =============================================================================

file_model = api.model(
    "File",
    {
        "id": fields.String(description="Unique file identifier"),
        "name": fields.String(description="Display name"),
        "created_at": fields.String(description="Upload time (ISO timestamp)"),
        "size_bytes": fields.Integer(description="Size in bytes", min=0),
        "encoding": fields.String(
            description="Detected text encoding, or 'Unknown' for binary files"
        ),
        "is_text": fields.Boolean(description="Whether the content is text"),
    },
)

file_list_response = api.model(
    "FileListResponse",
    {
        "files": fields.List(fields.Nested(file_model), description="Files, oldest first"),
        "total_bytes": fields.Integer(description="Bytes used by all files"),
        "max_total_bytes": fields.Integer(description="Storage capacity in bytes"),
    },
)

transcode_response = api.inherit(
    "TranscodeResponse",
    file_model,
    {
        "source_encoding": fields.String(description="Encoding the bytes were read as"),
        "lossy": fields.Boolean(
            description="True when characters were replaced because the target lacks them"
        ),
    },
)

bridge_response = api.model(
    "BridgeResponse",
    {
        "token": fields.String(description="Single-use bridge token"),
        "display_url": fields.String(description="URL encoded in the QR code"),
        "qr_url": fields.String(description="PNG rendering of the QR code"),
        "expires_at": fields.String(description="Expiry time (ISO timestamp)"),
    },
)

download_token_response = api.model(
    "DownloadTokenResponse",
    {
        "token": fields.String(description="Single-use download token"),
        "download_url": fields.String(description="Direct download URL"),
        "expires_at": fields.String(description="Expiry time (ISO timestamp)"),
    },
)

encodings_response = api.model(
    "EncodingsResponse",
    {
        "source": fields.List(fields.String, description="Accepted source encodings"),
        "target": fields.List(fields.String, description="Accepted target encodings"),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Stable error kind"),
        "title": fields.String(description="Short title"),
        "message": fields.String(description="User-facing message"),
        "action": fields.String(description="Suggested next step"),
        "detail": fields.String(description="Technical detail", allow_null=True),
    },
)

health_response = api.model(
    "HealthResponse",
    {
        "status": fields.String(
            description="Overall health status", enum=["ok", "degraded"]
        ),
        "files": fields.Integer(description="Number of stored files"),
        "total_bytes": fields.Integer(description="Bytes used by all files"),
        "token_backend": fields.String(description="Where token state lives"),
        "redis": fields.String(description="Redis connection status"),
        "socketio": fields.String(description="SocketIO availability status"),
    },
)
