"""
HTTP Layer

REST API (flask-restx), browser-facing pages and WebSocket events.
"""
