"""
QR Code Rendering Interface

Bridges are handed to the second device as a scannable code of an
absolute URL. Rendering the image is an infrastructure concern.
"""

from abc import ABC, abstractmethod


class IQrCodeRenderer(ABC):
    """Renders a URL string as a PNG image."""

    content_type = "image/png"

    @abstractmethod
    def render_png(self, data: str) -> bytes:
        """
        Encode ``data`` as a QR code.

        Returns:
            PNG image bytes

        Raises:
            ValueError: If the data cannot be encoded
        """
        pass  # pragma: no cover
