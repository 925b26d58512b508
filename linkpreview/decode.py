"""Text decoding helpers for scraped attribute values.

Facebook pages serve Open Graph content with a mix of HTML entities and
literal backslash escapes left over from embedded JSON. Both helpers here are
total: they never raise, whatever the input looks like.
"""

import re

_NAMED_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#039;", "'"),
    ("&#39;", "'"),
    ("&nbsp;", " "),
)

_HEX_ENTITY_RE = re.compile(r"&#x([0-9a-fA-F]+);", re.IGNORECASE)
_DEC_ENTITY_RE = re.compile(r"&#([0-9]+);")
_WHITESPACE_RE = re.compile(r"\s+")

REPLACEMENT_CHAR = "\ufffd"


def code_point_to_char(code_point: int) -> str:
    # Lone surrogates are not characters; chr() would accept them silently
    if 0xD800 <= code_point <= 0xDFFF:
        return REPLACEMENT_CHAR
    try:
        return chr(code_point)
    except (ValueError, OverflowError):
        return REPLACEMENT_CHAR


def reference_to_char(digits: str, base: int = 10) -> str:
    """Map the digits of a numeric reference to a character, U+FFFD if invalid."""
    try:
        code_point = int(digits, base)
    except ValueError:
        # Decimal strings past the interpreter's int conversion limit
        return REPLACEMENT_CHAR
    return code_point_to_char(code_point)


def decode_entities(text: str) -> str:
    """Decode named and numeric HTML character references.

    Named entities are replaced first, then hexadecimal and decimal numeric
    references. Numeric references map to full code points, so emoji come
    out as one character. References that do not name a valid character
    become U+FFFD.

    Args:
        text: Raw attribute text

    Returns:
        Decoded text
    """
    if not text:
        return text or ""

    for entity, literal in _NAMED_ENTITIES:
        text = text.replace(entity, literal)

    text = _HEX_ENTITY_RE.sub(lambda m: reference_to_char(m.group(1), 16), text)
    text = _DEC_ENTITY_RE.sub(lambda m: reference_to_char(m.group(1)), text)
    return text


def clean_escapes(text: str) -> str:
    """Collapse literal backslash escapes into plain, single-spaced text."""
    if not text:
        return text or ""

    text = text.replace("\\n", " ")
    text = text.replace("\\t", " ")
    text = text.replace("\\r", "")
    text = text.replace('\\"', '"')
    text = text.replace("\\'", "'")
    text = text.replace("\\\\", "\\")
    return _WHITESPACE_RE.sub(" ", text).strip()
