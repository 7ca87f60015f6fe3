"""Security utilities for Drive JSON Sync.

Provides the randomness and hashing capabilities used by PKCE and
multipart uploads, base64url encoding, and redaction helpers for
safe logging.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from abc import ABC, abstractmethod

# Unreserved URL characters (RFC 3986 section 2.3)
UNRESERVED_CHARACTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"


class RandomBytes(ABC):
    """Source of cryptographically secure random bytes."""

    @abstractmethod
    def __call__(self, n: int) -> bytes:
        """Return ``n`` random bytes."""


class Sha256Hasher(ABC):
    """SHA-256 digest capability."""

    @abstractmethod
    def __call__(self, data: bytes) -> bytes:
        """Return the raw 32-byte SHA-256 digest of ``data``."""


class SystemRandomBytes(RandomBytes):
    """Random bytes from the operating system CSPRNG."""

    def __call__(self, n: int) -> bytes:
        return secrets.token_bytes(n)


class HashlibSha256(Sha256Hasher):
    """SHA-256 backed by hashlib."""

    def __call__(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()


def base64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding.

    The standard alphabet is remapped explicitly (``+`` to ``-`` and
    ``/`` to ``_``) and trailing ``=`` padding is stripped.

    Args:
        data: Raw bytes to encode

    Returns:
        Unpadded base64url string
    """
    encoded = base64.b64encode(data).decode("ascii")
    return encoded.replace("+", "-").replace("/", "_").rstrip("=")


def random_string(length: int, random_bytes: RandomBytes | None = None) -> str:
    """Generate a random string over the unreserved URL alphabet.

    Each random byte selects one character by ``byte % 66``.

    Args:
        length: Number of characters to produce
        random_bytes: Optional randomness source (defaults to the system CSPRNG)

    Returns:
        Random string of exactly ``length`` characters
    """
    source = random_bytes or SystemRandomBytes()
    values = source(length)
    alphabet_size = len(UNRESERVED_CHARACTERS)
    return "".join(UNRESERVED_CHARACTERS[value % alphabet_size] for value in values)


def generate_state(nbytes: int = 32) -> str:
    """Generate a random OAuth ``state`` value.

    Args:
        nbytes: Number of random bytes (default 32 = 256 bits)

    Returns:
        URL-safe base64-encoded token string
    """
    return secrets.token_urlsafe(nbytes)


def redact(value: str | None) -> str:
    """Redact a potentially sensitive value for safe logging.

    Args:
        value: The value to redact

    Returns:
        "***" if value is non-empty, "<empty>" if empty/None
    """
    if value is None or value == "":
        return "<empty>"
    return "***"
