import base64
import hashlib
import re
import secrets
import zlib

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
TOKEN_LEN = 30
TOKEN_ID_LEN = 24
CHECKSUM_LEN = 6
ENTROPY_LEN = TOKEN_LEN - CHECKSUM_LEN

_BODY_RE = re.compile(r"^[0-9A-Za-z]{%d}$" % TOKEN_LEN)


def is_valid_prefix(prefix: str) -> bool:
    """Any non-empty string; the caller picks its own separator, e.g. "svc_"."""
    return isinstance(prefix, str) and len(prefix) > 0


def encode_base62(value: int, width: int) -> str:
    """
    Encode a non-negative integer in base 62, left-padded with '0'.

    Raises:
        ValueError: If the value is negative or does not fit in width digits
    """
    if value < 0:
        raise ValueError("Value must be non-negative")
    digits = []
    while value:
        value, remainder = divmod(value, 62)
        digits.append(ALPHABET[remainder])
    encoded = "".join(reversed(digits)).rjust(width, ALPHABET[0])
    if len(encoded) > width:
        raise ValueError(f"Value does not fit in {width} base62 digits")
    return encoded


def checksum(entropy: str) -> str:
    """CRC32 of the random part, as 6 base62 digits (62**6 > 2**32)."""
    return encode_base62(zlib.crc32(entropy.encode("utf-8")), CHECKSUM_LEN)


def generate(prefix: str) -> str:
    """
    Generate a capability token.

    The token is the prefix followed directly by TOKEN_LEN base62
    characters: ENTROPY_LEN drawn from a CSPRNG, then a CRC32 checksum of
    those characters. Any separator belongs to the prefix.

    Args:
        prefix: Human readable tag, e.g. "svc_" or "prod_"

    Returns:
        str: The full token

    Raises:
        ValueError: If the prefix is empty
    """
    if not is_valid_prefix(prefix):
        raise ValueError(f"Invalid token prefix: {prefix!r}")
    entropy = "".join(secrets.choice(ALPHABET) for _ in range(ENTROPY_LEN))
    return f"{prefix}{entropy}{checksum(entropy)}"


def split(token: str) -> tuple[str, str] | None:
    """
    Return (prefix, body) for a well-formed token, None otherwise.

    The body is the last TOKEN_LEN characters; whatever precedes it is the
    prefix and must not be empty.
    """
    if not isinstance(token, str) or len(token) <= TOKEN_LEN:
        return None
    prefix, body = token[:-TOKEN_LEN], token[-TOKEN_LEN:]
    if not _BODY_RE.match(body):
        return None
    return prefix, body


def verify(token: str) -> bool:
    """
    Check a token's shape and checksum without touching storage.

    A passing token is not necessarily an issued one; it only rules out
    typos and random strings before a database lookup.
    """
    parts = split(token)
    if parts is None:
        return False
    _, body = parts
    entropy, check = body[:ENTROPY_LEN], body[ENTROPY_LEN:]
    return secrets.compare_digest(checksum(entropy), check)


def to_web64(encoded: str) -> str:
    return encoded.replace("+", "-").replace("/", "_").replace("=", "")


def hash_id(token: str, length: int = TOKEN_ID_LEN) -> str:
    """
    Compute the lookup id of a token.

    SHA-256 of the full token, base64 web-safe encoded without padding,
    truncated to length characters. 24 characters keep 144 bits of the
    digest: collisions are negligible but not impossible, which is why the
    column also carries a uniqueness constraint.

    Args:
        token: The full token, prefix included
        length: Number of characters to keep

    Returns:
        str: The truncated digest
    """
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return to_web64(base64.b64encode(digest).decode("ascii"))[:length]
