"""
Version 1 of the FileBridge REST API.

Flask-RESTX serves the OpenAPI document and Swagger UI at /api/v1/docs.
"""

import os

from flask import Blueprint
from flask_restx import Api

API_VERSION = os.getenv("API_VERSION", "v1")

api_v1_bp = Blueprint("api_v1", __name__, url_prefix=f"/api/{API_VERSION}")

api = Api(
    api_v1_bp,
    version="1.0",
    title="FileBridge API",
    description="Temporary file sharing with QR-code handoff between desktop and phone",
    doc="/docs",
    contact="FileBridge Team",
    license="MIT",
)

# models.py registers on ``api``, so namespaces load after it exists
from .namespaces import bridge_ns, encodings_ns, files_ns, system_ns  # noqa: E402

for namespace, path in (
    (files_ns, "/files"),
    (bridge_ns, "/bridge"),
    (encodings_ns, "/encodings"),
    (system_ns, "/system"),
):
    api.add_namespace(namespace, path=path)
