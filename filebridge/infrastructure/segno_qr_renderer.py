"""
Segno QR Code Renderer

IQrCodeRenderer implementation producing PNG images with segno.
"""

import io

import segno

from ..domain.tokens.qr_code import IQrCodeRenderer


class SegnoQrCodeRenderer(IQrCodeRenderer):
    """Renders QR codes with medium error correction."""

    def __init__(self, scale: int = 8, border: int = 4, error: str = "m"):
        self.scale = scale
        self.border = border
        self.error = error

    def render_png(self, data: str) -> bytes:
        if not data:
            raise ValueError("QR code data cannot be empty")

        qr = segno.make(data, error=self.error, micro=False)
        buffer = io.BytesIO()
        qr.save(buffer, kind="png", scale=self.scale, border=self.border)
        return buffer.getvalue()
