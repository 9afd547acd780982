"""filebridge: desktop file collection with QR-code bridges to a phone."""

__version__ = "1.0.0"
