"""
Hypothesis Strategies for Property-Based Testing

Custom strategies for generating file names, file contents and text in
the supported encodings.
"""

import string

from hypothesis import strategies as st

from filebridge.domain.text_encoding import TextEncoding


# =============================================================================
# Text Strategies
# =============================================================================

encodings = st.sampled_from(list(TextEncoding))

# Scripts the allow-list is meant for: ASCII, Latin-1 supplement, CJK
mixed_text = st.text(
    alphabet=st.one_of(
        st.sampled_from(string.printable),
        st.characters(min_codepoint=0xA0, max_codepoint=0xFF),
        st.characters(min_codepoint=0x4E00, max_codepoint=0x9FFF),
    ),
    max_size=200,
)


@st.composite
def encodable_text(draw):
    """Draw ``(text, encoding)`` where ``text`` is strictly representable in ``encoding``."""
    encoding = draw(encodings)
    text = draw(mixed_text)
    kept = []
    for ch in text:
        try:
            ch.encode(encoding.codec)
        except UnicodeEncodeError:
            continue
        kept.append(ch)
    return "".join(kept), encoding


# =============================================================================
# File Strategies
# =============================================================================

file_contents = st.binary(max_size=2048)

file_sizes = st.integers(min_value=0, max_value=40 * 1024)

_name_chars = st.characters(
    exclude_categories=("Cc", "Cs"),
    exclude_characters="/\\",
)

valid_names = st.text(alphabet=_name_chars, min_size=1, max_size=80).filter(
    lambda name: name.strip() != ""
)


@st.composite
def double_byte_runs(draw):
    """Bytes made of ASCII and lead/trail pairs in the CJK double-byte range."""
    units = draw(
        st.lists(
            st.one_of(
                st.builds(bytes, st.lists(st.integers(0x20, 0x7E), min_size=1, max_size=1)),
                st.builds(
                    lambda lead, trail: bytes((lead, trail)),
                    st.integers(0x81, 0xFE),
                    st.integers(0x40, 0xFE),
                ),
            ),
            max_size=64,
        )
    )
    return b"".join(units)
