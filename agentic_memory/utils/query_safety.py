"""
Escaping of user-controlled text before it is embedded in openCypher statements.
"""

# Backslash must come first, otherwise the backslashes introduced by the
# later replacements would be doubled again.
_ESCAPES = (
    ('\\', '\\\\'),
    ("'", "\\'"),
    ('"', '\\"'),
    ('\n', '\\n'),
    ('\r', '\\r'),
    ('\t', '\\t'),
    ('\b', '\\b'),
    ('\f', '\\f'),
    ('\0', '\\u0000'),
)


def escape_string(text: str) -> str:
    """Escape text for use inside a single-quoted openCypher string literal.

    Characters outside the escape table, including non-ASCII text, pass
    through unchanged. Escaping is not idempotent: escaping already escaped
    text doubles its backslashes.

    Args:
        text: Arbitrary, possibly user-controlled text

    Returns:
        Text that cannot terminate the surrounding literal early
    """
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def quote(text: str) -> str:
    """Escape text and wrap it in single quotes."""
    return f"'{escape_string(text)}'"
