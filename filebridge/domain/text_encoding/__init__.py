"""Text encoding detection and transcoding."""

from .services import EncodedText, TextEncodingService, TextSniff
from .value_objects import AUTO, UNKNOWN, TextEncoding, source_encodings, target_encodings

__all__ = [
    "AUTO",
    "UNKNOWN",
    "EncodedText",
    "TextEncoding",
    "TextEncodingService",
    "TextSniff",
    "source_encodings",
    "target_encodings",
]
