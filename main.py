"""
main.py

Flask backend for FileBridge: a temporary file list with QR-code handoff
between a desktop browser and a phone.

Dependencies:
  - Python packages: Flask, flask-restx, flask-cors, segno, redis, flask-socketio
  - Infrastructure: Redis server (only with TOKEN_BACKEND=redis)

Notes:
  - API v1 endpoints available at /api/v1/ with Swagger docs at /api/v1/docs
  - Set PUBLIC_BASE_URL to an address the phone can reach, otherwise QR codes
    point at the address the desktop used
  - Uses application factory pattern for better testability
"""

import os

from app_factory import create_app
from filebridge.config.socketio_config import get_socketio

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    # Use SocketIO.run if available, otherwise fall back to app.run
    socketio = get_socketio()
    if socketio is not None:
        socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
    else:
        app.run(host=host, port=port, debug=debug)
