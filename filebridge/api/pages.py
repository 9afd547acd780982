"""
Browser Pages

Routes opened directly by a browser rather than called by the desktop
client: the direct download link, QR code images and the two small pages
a phone lands on after scanning a bridge QR code.
"""

import logging

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    render_template_string,
    send_file,
)

from ..domain.errors import (
    DomainError,
    ERROR_MESSAGES,
    ErrorCategory,
    NotFoundError,
    error_response_for,
)
from ..domain.tokens.entities import BridgeKind, token_prefix
from .responses import display_url
from .v1 import API_VERSION

logger = logging.getLogger(__name__)

pages_bp = Blueprint("pages", __name__)

_PAGE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title }}</title>
<style>
body { font-family: system-ui, sans-serif; margin: 2rem auto; max-width: 28rem; padding: 0 1rem; }
button, input { font-size: 1.1rem; margin-top: 1rem; width: 100%; }
#status { margin-top: 1rem; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
{% if message %}<p>{{ message }}</p>{% endif %}
{% if action %}<p>{{ action }}</p>{% endif %}
{{ body|safe }}
</body>
</html>
"""

_UPLOAD_BODY = """
<form id="upload">
  <input type="file" name="file" required>
  <button type="submit">Upload</button>
</form>
<p id="status"></p>
<script>
document.getElementById("upload").addEventListener("submit", async (event) => {
  event.preventDefault();
  const status = document.getElementById("status");
  status.textContent = "Uploading...";
  const response = await fetch("{{ upload_url }}", { method: "POST", body: new FormData(event.target) });
  const data = await response.json();
  status.textContent = response.ok ? "Sent " + data.name : (data.message || "Upload failed");
  if (response.ok) { event.target.remove(); }
});
</script>
"""

_DOWNLOAD_BODY = """
<p><strong>{{ name }}</strong> ({{ size }})</p>
<button id="download">Download</button>
<p id="status"></p>
<script>
document.getElementById("download").addEventListener("click", async (event) => {
  const status = document.getElementById("status");
  const response = await fetch("{{ token_url }}", { method: "POST" });
  const data = await response.json();
  if (response.ok) {
    event.target.remove();
    window.location.href = data.download_url;
  } else {
    status.textContent = data.message || "Download failed";
  }
});
</script>
"""


def _human_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def _render(
    title: str,
    body: str = "",
    status: int = 200,
    message: str = "",
    action: str = "",
    **context,
):
    html = render_template_string(
        _PAGE,
        title=title,
        message=message,
        action=action,
        body=render_template_string(body, **context) if body else "",
    )
    return Response(html, status=status, mimetype="text/html")


def _error_page(error: DomainError, status: int = None):
    info = ERROR_MESSAGES.get(error.category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR])
    _, mapped_status = error_response_for(error)
    return _render(
        info["title"],
        status=status or mapped_status,
        message=info["message"],
        action=info["action"],
    )


def _no_store(response: Response) -> Response:
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


@pages_bp.route("/dl/<string:token>")
def direct_download(token):
    """Redeem a download grant and stream the file as an attachment."""
    try:
        handle = current_app.transfer_service.redeem_download(token)
    except DomainError as e:
        logger.info(f"[DIRECT_DOWNLOAD] {token_prefix(token)} refused: {e}")
        return _no_store(_error_page(e))

    record = handle.record
    # Werkzeug adds an RFC 5987 filename* parameter for non-ASCII names
    response = send_file(
        handle.stream,
        mimetype="application/octet-stream",
        as_attachment=True,
        download_name=record.name,
        conditional=False,
        etag=False,
    )
    if response.content_length is None:
        response.content_length = record.size_bytes
    logger.info(
        f"[DIRECT_DOWNLOAD] {token_prefix(token)} serving {record.id} ({record.size_bytes} bytes)"
    )
    return _no_store(response)


@pages_bp.route("/qrcode/<string:token>.png")
def qr_code(token):
    """PNG QR code of a live bridge's display URL."""
    try:
        session = current_app.transfer_service.peek_bridge(token)
    except DomainError as e:
        body, status = error_response_for(e)
        return _no_store(jsonify(body)), status

    png = current_app.qr_renderer.render_png(display_url(session))
    return _no_store(Response(png, mimetype=current_app.qr_renderer.content_type))


@pages_bp.route("/m/upload/<string:token>")
def phone_upload_page(token):
    """Upload form shown on the phone after scanning an upload bridge."""
    try:
        current_app.transfer_service.inspect_bridge(token, BridgeKind.UPLOAD)
    except DomainError as e:
        return _no_store(_error_page(e, status=410))

    return _no_store(
        _render(
            "Send a file",
            _UPLOAD_BODY,
            message="Choose a file to send to the computer.",
            upload_url=f"/api/{API_VERSION}/bridge/{token}/upload",
        )
    )


@pages_bp.route("/m/download/<string:token>")
def phone_download_page(token):
    """Download page shown on the phone after scanning a download bridge."""
    try:
        record = current_app.transfer_service.download_info(token)
    except NotFoundError as e:
        return _no_store(_error_page(e))
    except DomainError as e:
        return _no_store(_error_page(e, status=410))

    return _no_store(
        _render(
            "Receive a file",
            _DOWNLOAD_BODY,
            name=record.name,
            size=_human_size(record.size_bytes),
            token_url=f"/api/{API_VERSION}/bridge/{token}/download-token",
        )
    )
