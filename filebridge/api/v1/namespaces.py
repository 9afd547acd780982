"""
API Namespaces - Organized endpoint groups
"""

from flask import current_app, request
from flask_restx import Namespace, Resource, reqparse
from werkzeug.datastructures import FileStorage

from ...domain.errors import ErrorCategory, create_error_response
from ...domain.tokens.entities import token_prefix
from ..responses import (
    api_error_response,
    bridge_payload,
    grant_payload,
    health_status,
)
from .models import (
    bridge_response,
    download_bridge_request,
    download_token_response,
    encodings_response,
    error_response,
    file_list_response,
    file_model,
    health_response,
    rename_request,
    transcode_request,
    transcode_response,
)

upload_parser = reqparse.RequestParser()
upload_parser.add_argument(
    "file", location="files", type=FileStorage, required=True, help="File to upload"
)


def _uploaded_file():
    """The multipart ``file`` part, or None when it is missing."""
    return request.files.get("file")


def _missing_file_response():
    return create_error_response(
        ErrorCategory.INVALID_ARGUMENT,
        "Missing multipart field 'file'",
    )


# =============================================================================
# Files Namespace - Desktop file list operations
# =============================================================================

files_ns = Namespace("files", description="File list operations")


@files_ns.route("")
class FileList(Resource):
    """List and upload files"""

    @files_ns.doc("list_files")
    @files_ns.response(200, "Success", file_list_response)
    def get(self):
        """
        List stored files, oldest first
        """
        try:
            file_service = current_app.file_service
            stats = file_service.stats()
            return {
                "files": [record.to_dict() for record in file_service.list_files()],
                "total_bytes": stats.total_bytes,
                "max_total_bytes": stats.max_total_bytes,
            }, 200
        except Exception as e:
            return api_error_response("[FILES]", e)

    @files_ns.doc("upload_file")
    @files_ns.expect(upload_parser)
    @files_ns.response(201, "Created", file_model)
    @files_ns.response(400, "Bad Request", error_response)
    @files_ns.response(413, "File Too Large", error_response)
    @files_ns.response(503, "Too Many Uploads", error_response)
    @files_ns.response(507, "Storage Full", error_response)
    def post(self):
        """
        Upload a file

        The oldest files are evicted when the storage limits would be exceeded.
        """
        try:
            uploaded = _uploaded_file()
            if uploaded is None:
                return _missing_file_response()

            record = current_app.file_service.upload(uploaded.filename, uploaded.stream)
            current_app.logger.info(
                f"[UPLOAD] Stored {record.name!r} as {record.id} ({record.size_bytes} bytes)"
            )
            return record.to_dict(), 201
        except Exception as e:
            return api_error_response("[UPLOAD]", e)


@files_ns.route("/<string:file_id>")
@files_ns.param("file_id", "The file identifier")
class File(Resource):
    """Rename and delete files"""

    @files_ns.doc("rename_file")
    @files_ns.expect(rename_request, validate=True)
    @files_ns.response(200, "Success", file_model)
    @files_ns.response(400, "Invalid Name", error_response)
    @files_ns.response(404, "File Not Found", error_response)
    def patch(self, file_id):
        """
        Rename a file

        Names are trimmed; path separators and control characters are rejected.
        """
        data = request.get_json() or {}
        try:
            record = current_app.file_service.rename(file_id, data.get("name"))
            return record.to_dict(), 200
        except Exception as e:
            return api_error_response("[RENAME]", e)

    @files_ns.doc("delete_file")
    @files_ns.response(204, "File deleted")
    @files_ns.response(404, "File Not Found", error_response)
    @files_ns.response(500, "Storage Error", error_response)
    def delete(self, file_id):
        """
        Delete a file and its bytes
        """
        try:
            current_app.file_service.delete(file_id)
            return "", 204
        except Exception as e:
            return api_error_response("[DELETE]", e)


@files_ns.route("/<string:file_id>/transcode")
@files_ns.param("file_id", "The file identifier")
class FileTranscode(Resource):
    """Convert a text file to another encoding"""

    @files_ns.doc("transcode_file")
    @files_ns.expect(transcode_request, validate=True)
    @files_ns.response(200, "Success", transcode_response)
    @files_ns.response(400, "Unsupported Encoding or Not Text", error_response)
    @files_ns.response(404, "File Not Found", error_response)
    @files_ns.response(422, "Cannot Decode or Encode", error_response)
    @files_ns.response(503, "Too Many Conversions", error_response)
    def post(self, file_id):
        """
        Transcode a text file in place

        Characters missing from the target encoding are replaced with '?'
        unless strict is set, in which case the request fails.
        """
        data = request.get_json() or {}
        try:
            outcome = current_app.file_service.transcode(
                file_id,
                data.get("source_encoding") or "auto",
                data.get("target_encoding"),
                bool(data.get("strict", False)),
            )
            return outcome.to_dict(), 200
        except Exception as e:
            return api_error_response("[TRANSCODE]", e)


@files_ns.route("/<string:file_id>/download-token")
@files_ns.param("file_id", "The file identifier")
class FileDownloadToken(Resource):
    """Issue a single-use download link"""

    @files_ns.doc("issue_download_token")
    @files_ns.response(201, "Created", download_token_response)
    @files_ns.response(404, "File Not Found", error_response)
    def post(self, file_id):
        """
        Issue a short-lived, single-use download URL for a file
        """
        try:
            grant = current_app.transfer_service.issue_download_token(file_id)
            return grant_payload(grant), 201
        except Exception as e:
            return api_error_response("[DOWNLOAD_TOKEN]", e)


# =============================================================================
# Bridge Namespace - QR code handoff to a second device
# =============================================================================

bridge_ns = Namespace("bridge", description="Phone handoff operations")


@bridge_ns.route("/upload")
class UploadBridge(Resource):
    """Issue an upload bridge"""

    @bridge_ns.doc("issue_upload_bridge")
    @bridge_ns.response(201, "Created", bridge_response)
    def post(self):
        """
        Issue a QR code that lets a phone upload one file
        """
        try:
            session = current_app.transfer_service.issue_upload_bridge()
            return bridge_payload(session), 201
        except Exception as e:
            return api_error_response("[BRIDGE_ISSUE]", e)


@bridge_ns.route("/download")
class DownloadBridge(Resource):
    """Issue a download bridge"""

    @bridge_ns.doc("issue_download_bridge")
    @bridge_ns.expect(download_bridge_request, validate=True)
    @bridge_ns.response(201, "Created", bridge_response)
    @bridge_ns.response(404, "File Not Found", error_response)
    def post(self):
        """
        Issue a QR code that lets a phone download one file
        """
        data = request.get_json() or {}
        try:
            session = current_app.transfer_service.issue_download_bridge(
                data.get("file_id")
            )
            return bridge_payload(session), 201
        except Exception as e:
            return api_error_response("[BRIDGE_ISSUE]", e)


@bridge_ns.route("/<string:token>")
@bridge_ns.param("token", "The bridge token")
class BridgeInfo(Resource):
    """Inspect a download bridge"""

    @bridge_ns.doc("bridge_download_info")
    @bridge_ns.response(200, "Success", file_model)
    @bridge_ns.response(404, "Unknown Token or File", error_response)
    @bridge_ns.response(410, "Token Expired or Used", error_response)
    def get(self, token):
        """
        Metadata of the file behind a download bridge

        Does not consume the bridge.
        """
        try:
            record = current_app.transfer_service.download_info(token)
            return record.to_dict(), 200
        except Exception as e:
            return api_error_response(f"[BRIDGE_INFO] {token_prefix(token)}", e)


@bridge_ns.route("/<string:token>/upload")
@bridge_ns.param("token", "The bridge token")
class BridgeUpload(Resource):
    """Upload through a bridge"""

    @bridge_ns.doc("bridge_upload")
    @bridge_ns.expect(upload_parser)
    @bridge_ns.response(201, "Created", file_model)
    @bridge_ns.response(404, "Unknown Token", error_response)
    @bridge_ns.response(410, "Token Expired or Used", error_response)
    @bridge_ns.response(413, "File Too Large", error_response)
    @bridge_ns.response(503, "Too Many Uploads", error_response)
    def post(self, token):
        """
        Upload one file through an upload bridge

        The bridge is consumed only when the file was stored; a failed
        upload leaves it usable for a retry.
        """
        tag = f"[BRIDGE_UPLOAD] {token_prefix(token)}"
        try:
            uploaded = _uploaded_file()
            if uploaded is None:
                return _missing_file_response()

            record = current_app.transfer_service.bridge_upload(
                token, uploaded.filename, uploaded.stream
            )
            current_app.logger.info(f"{tag} Stored {record.name!r} as {record.id}")
            return record.to_dict(), 201
        except Exception as e:
            return api_error_response(tag, e)


@bridge_ns.route("/<string:token>/download-token")
@bridge_ns.param("token", "The bridge token")
class BridgeDownloadToken(Resource):
    """Exchange a download bridge for a download link"""

    @bridge_ns.doc("bridge_download_token")
    @bridge_ns.response(201, "Created", download_token_response)
    @bridge_ns.response(404, "Unknown Token or File", error_response)
    @bridge_ns.response(410, "Token Expired or Used", error_response)
    def post(self, token):
        """
        Consume a download bridge and issue a single-use download URL
        """
        try:
            grant = current_app.transfer_service.bridge_download_token(token)
            return grant_payload(grant), 201
        except Exception as e:
            return api_error_response(f"[BRIDGE_DOWNLOAD] {token_prefix(token)}", e)


# =============================================================================
# Encodings Namespace
# =============================================================================

encodings_ns = Namespace("encodings", description="Supported text encodings")


@encodings_ns.route("")
class Encodings(Resource):
    @encodings_ns.doc("list_encodings")
    @encodings_ns.response(200, "Success", encodings_response)
    def get(self):
        """
        Encodings accepted by the transcode endpoint
        """
        return current_app.file_service.encodings(), 200


# =============================================================================
# System Namespace
# =============================================================================

system_ns = Namespace("system", description="System status")


@system_ns.route("/health")
class Health(Resource):
    @system_ns.doc("health")
    @system_ns.response(200, "Healthy", health_response)
    @system_ns.response(503, "Degraded", health_response)
    def get(self):
        """
        Storage usage and token backend status
        """
        status = health_status()
        return status, 200 if status["status"] == "ok" else 503
