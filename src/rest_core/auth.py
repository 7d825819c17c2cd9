"""
Basic authentication for rest_core.

The Base64 encoder is written out bit by bit so the Authorization
header always uses the standard alphabet with ``=`` padding and no line
wrapping.
"""

AUTHORIZATION = "Authorization"

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_base64(content: str) -> str:
    """
    Encode text as standard Base64.

    Args:
        content: Text to encode; encoded as UTF-8 first

    Returns:
        The Base64 representation of the UTF-8 bytes
    """
    data = content.encode("utf-8")
    symbols = []
    pad = 0
    for i in range(0, len(data), 3):
        # Pack up to three bytes into one 24-bit block
        block = data[i] << 16
        if i + 1 < len(data):
            block |= data[i + 1] << 8
        else:
            pad += 1
        if i + 2 < len(data):
            block |= data[i + 2]
        else:
            pad += 1

        for _ in range(4 - pad):
            symbols.append(_ALPHABET[(block & 0xFC0000) >> 18])
            block = (block << 6) & 0xFFFFFF

    return "".join(symbols) + "=" * pad


def basic_auth_header(username: str, password: str) -> str:
    """Build the value of an ``Authorization: Basic`` header."""
    return "Basic " + encode_base64(f"{username}:{password}")
