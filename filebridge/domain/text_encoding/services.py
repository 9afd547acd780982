"""
Text Encoding Services

Content sniffing, strict decoding and target encoding for stored files.

Detection is conservative: it prefers reporting a file as binary over
opening a text conversion that would corrupt it.
"""

import codecs
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..errors import DecodeError, UnrepresentableCharacterError
from .value_objects import AUTO, UNKNOWN, TextEncoding

# Candidate order used by automatic detection
DETECTION_ORDER = (
    TextEncoding.UTF_8,
    TextEncoding.GB18030,
    TextEncoding.GBK,
    TextEncoding.BIG5,
    TextEncoding.WINDOWS_1252,
    TextEncoding.ISO_8859_1,
)

_WHITESPACE_CONTROLS = frozenset(b"\t\n\r")


def _round_trips(text: str, encoding: TextEncoding, raw: bytes, partial: bool = False) -> bool:
    """True if ``text`` encodes back to ``raw`` (or to a prefix of it when ``partial``)."""
    # Big5 decodes a few duplicate code points that encode to other bytes
    try:
        again = text.encode(encoding.codec, errors="strict")
    except UnicodeEncodeError:
        return False
    return raw.startswith(again) if partial else again == raw


@dataclass(frozen=True)
class TextSniff:
    """Result of sniffing file content."""

    is_text: bool
    encoding: str = UNKNOWN

    @classmethod
    def binary(cls) -> "TextSniff":
        return cls(is_text=False, encoding=UNKNOWN)


@dataclass(frozen=True)
class EncodedText:
    """Bytes produced by a transcode, with the resolved encodings."""

    data: bytes
    source: TextEncoding
    target: TextEncoding
    lossy: bool = False


class TextEncodingService:
    """
    Domain service for detecting and converting text encodings.

    Thresholds:
        - only the first ``SAMPLE_SIZE`` bytes are inspected when sniffing
        - any NUL byte, or more than ``MAX_BAD_CONTROL_RATIO`` control bytes, means binary
        - multi-byte candidates need ``MIN_PRINTABLE_RATIO`` printable characters
        - single-byte candidates need ``MIN_PRINTABLE_RATIO_SINGLE_BYTE`` and at
          least ``MIN_CHARS_SINGLE_BYTE`` characters

    Automatic source detection accepts the first candidate, in
    ``DETECTION_ORDER``, that passes these checks. When none does the
    content is reported as not text and ``decode(..., "auto")`` fails.
    """

    SAMPLE_SIZE = 64 * 1024
    MAX_BAD_CONTROL_RATIO = 0.01
    MIN_PRINTABLE_RATIO = 0.95
    MIN_PRINTABLE_RATIO_SINGLE_BYTE = 0.98
    MIN_CHARS_SINGLE_BYTE = 20

    def sniff(self, content: bytes) -> TextSniff:
        """
        Decide whether content is text and guess its encoding.

        Never raises: undecidable input is reported as binary with an
        ``Unknown`` encoding.

        Args:
            content: Leading bytes of the file (longer input is truncated)

        Returns:
            TextSniff with ``is_text`` and the best-guess encoding name
        """
        sample = bytes(content[: self.SAMPLE_SIZE])
        truncated = len(content) > self.SAMPLE_SIZE

        if self._looks_binary(sample):
            return TextSniff.binary()

        for candidate in DETECTION_ORDER:
            if self._accepts(sample, candidate, truncated):
                return TextSniff(is_text=True, encoding=candidate.value)

        return TextSniff.binary()

    def resolve_source(
        self, content: bytes, source: Union[str, TextEncoding]
    ) -> TextEncoding:
        """
        Resolve ``auto`` or a declared name to an allowed encoding.

        Raises:
            UnsupportedEncodingError: Declared name is outside the allow-list
            DecodeError: Automatic detection could not settle on an encoding
        """
        if isinstance(source, TextEncoding):
            return source

        if source is None or source.strip().lower() in ("", AUTO):
            sniffed = self.sniff(content)
            if not sniffed.is_text:
                raise DecodeError("Could not detect the source encoding")
            return TextEncoding.parse(sniffed.encoding)

        return TextEncoding.parse(source)

    def decode(self, content: bytes, source: Union[str, TextEncoding] = AUTO) -> str:
        """
        Strictly decode content.

        Args:
            content: Raw file bytes
            source: ``"auto"``, an allowed encoding name, or a TextEncoding

        Returns:
            Decoded text

        Raises:
            UnsupportedEncodingError: Declared name is outside the allow-list
            DecodeError: Bytes are invalid under the encoding, or detection failed
        """
        text, _ = self.decode_with_encoding(content, source)
        return text

    def decode_with_encoding(
        self, content: bytes, source: Union[str, TextEncoding] = AUTO
    ) -> Tuple[str, TextEncoding]:
        """
        Strictly decode content and also return the encoding that was used.

        Content that decodes but would not encode back to the same bytes
        (non-canonical sequences) is rejected as well.
        """
        encoding = self.resolve_source(content, source)
        raw = bytes(content)
        try:
            text = raw.decode(encoding.codec, errors="strict")
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"Content is not valid {encoding.value} at byte {e.start}", e
            ) from e
        if not _round_trips(text, encoding, raw):
            raise DecodeError(
                f"Content holds byte sequences that are not canonical {encoding.value}"
            )
        return text, encoding

    def encode(
        self, text: str, target: Union[str, TextEncoding], strict: bool = False
    ) -> bytes:
        """
        Encode text into a target encoding.

        This is lossy by default: characters the target cannot represent
        are replaced by ``?``, the codec's standard substitution. Pass
        ``strict=True`` to fail instead.

        Raises:
            UnsupportedEncodingError: Target is outside the allow-list
            UnrepresentableCharacterError: ``strict`` and a character has no mapping
        """
        if not isinstance(target, TextEncoding):
            target = TextEncoding.parse(target)
        data, _ = self._encode(text, target, strict)
        return data

    def transcode(
        self,
        content: bytes,
        source: Union[str, TextEncoding],
        target: Union[str, TextEncoding],
        strict: bool = False,
    ) -> EncodedText:
        """
        Rewrite content from the source encoding into the target encoding.

        The target is validated before any decoding happens.
        """
        target_encoding = target
        if not isinstance(target_encoding, TextEncoding):
            target_encoding = TextEncoding.parse(target)
        text, source_encoding = self.decode_with_encoding(content, source)
        data, lossy = self._encode(text, target_encoding, strict)
        return EncodedText(
            data=data, source=source_encoding, target=target_encoding, lossy=lossy
        )

    def _encode(
        self, text: str, target: TextEncoding, strict: bool
    ) -> Tuple[bytes, bool]:
        try:
            return text.encode(target.codec, errors="strict"), False
        except UnicodeEncodeError as e:
            if strict:
                raise UnrepresentableCharacterError(
                    f"Character {text[e.start]!r} cannot be represented in {target.value}", e
                ) from e
        return text.encode(target.codec, errors="replace"), True

    def _looks_binary(self, sample: bytes) -> bool:
        if not sample:
            return True
        if b"\x00" in sample:
            return True

        bad_controls = sum(
            1
            for byte in sample
            if (byte < 0x20 or byte == 0x7F) and byte not in _WHITESPACE_CONTROLS
        )
        return bad_controls / len(sample) > self.MAX_BAD_CONTROL_RATIO

    def _accepts(self, sample: bytes, candidate: TextEncoding, truncated: bool) -> bool:
        decoded = self._decode_sample(sample, candidate, truncated)
        if decoded is None or not decoded:
            return False
        if candidate is not TextEncoding.UTF_8 and "\ufffd" in decoded:
            return False
        if not _round_trips(decoded, candidate, sample, partial=truncated):
            return False

        ratio = _printable_ratio(decoded)
        if candidate.is_single_byte:
            return (
                ratio >= self.MIN_PRINTABLE_RATIO_SINGLE_BYTE
                and len(decoded) >= self.MIN_CHARS_SINGLE_BYTE
            )
        return ratio >= self.MIN_PRINTABLE_RATIO

    @staticmethod
    def _decode_sample(
        sample: bytes, candidate: TextEncoding, truncated: bool
    ) -> Optional[str]:
        # An incremental decoder tolerates a multi-byte sequence cut by the sample boundary
        decoder = codecs.getincrementaldecoder(candidate.codec)(errors="strict")
        try:
            return decoder.decode(sample, final=not truncated)
        except UnicodeDecodeError:
            return None


def _printable_ratio(text: str) -> float:
    printable = sum(1 for ch in text if ch in "\t\n\r" or ch.isprintable())
    return printable / len(text)
