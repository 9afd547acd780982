"""
Text Encoding Value Objects

The fixed allow-list of encodings the service can detect, decode and write.
"""

from enum import Enum
from typing import List

from ..errors import UnsupportedEncodingError

AUTO = "auto"
UNKNOWN = "Unknown"


class TextEncoding(Enum):
    """
    Allowed text encodings, in display order.

    ``value`` is the user-facing name; ``codec`` is the Python codec used
    to read and write bytes.
    """

    UTF_8 = "UTF-8"
    GB18030 = "GB18030"
    GBK = "GBK"
    BIG5 = "Big5"
    WINDOWS_1252 = "Windows-1252"
    ISO_8859_1 = "ISO-8859-1"

    @property
    def codec(self) -> str:
        return _CODECS[self]

    @property
    def is_single_byte(self) -> bool:
        """Single-byte charsets decode almost any input, so detection treats them stricter."""
        return self in (TextEncoding.WINDOWS_1252, TextEncoding.ISO_8859_1)

    @classmethod
    def parse(cls, name: str) -> "TextEncoding":
        """
        Resolve a display name (case-insensitive) to an allowed encoding.

        Raises:
            UnsupportedEncodingError: If the name is outside the allow-list
        """
        if isinstance(name, str):
            candidate = name.strip().lower()
            for encoding in cls:
                if encoding.value.lower() == candidate:
                    return encoding
        raise UnsupportedEncodingError(f"Unsupported encoding: {name!r}")

    def __str__(self) -> str:
        return self.value


_CODECS = {
    TextEncoding.UTF_8: "utf-8",
    TextEncoding.GB18030: "gb18030",
    TextEncoding.GBK: "gbk",
    TextEncoding.BIG5: "big5",
    TextEncoding.WINDOWS_1252: "cp1252",
    TextEncoding.ISO_8859_1: "latin-1",
}


def target_encodings() -> List[str]:
    """Display names of the allow-list, in the order shown to users."""
    return [encoding.value for encoding in TextEncoding]


def source_encodings() -> List[str]:
    """Accepted source encoding values: ``auto`` followed by the allow-list."""
    return [AUTO] + target_encodings()
