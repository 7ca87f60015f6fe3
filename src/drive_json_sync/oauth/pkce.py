"""PKCE (Proof Key for Code Exchange) implementation.

Implements RFC 7636 S256 challenges for the Google OAuth 2.0
Authorization Code flow.
"""

from __future__ import annotations

from dataclasses import dataclass

from drive_json_sync.security import (
    HashlibSha256,
    RandomBytes,
    Sha256Hasher,
    base64url_encode,
    random_string,
)

# Fixed verifier length (RFC 7636 allows 43-128 characters)
CODE_VERIFIER_LENGTH = 64


@dataclass(frozen=True)
class PKCEPair:
    """PKCE code verifier and challenge pair.

    The verifier stays with the caller until the code exchange; only
    the challenge is sent with the authorization request.

    Attributes:
        code_verifier: Random string sent with token request
        code_challenge: SHA256 hash of verifier sent with auth request
    """

    code_verifier: str
    code_challenge: str


def generate_code_verifier(
    length: int = CODE_VERIFIER_LENGTH,
    random_bytes: RandomBytes | None = None,
) -> str:
    """Generate a cryptographically random code verifier.

    Args:
        length: Verifier length in characters (43-128)
        random_bytes: Optional randomness source

    Returns:
        Verifier drawn from the unreserved URL characters

    Raises:
        ValueError: If length is outside 43-128
    """
    if not 43 <= length <= 128:
        msg = "code verifier length must be between 43 and 128 characters"
        raise ValueError(msg)

    return random_string(length, random_bytes)


def generate_code_challenge(verifier: str, sha256: Sha256Hasher | None = None) -> str:
    """Generate a code challenge from a code verifier.

    Computes BASE64URL(SHA256(code_verifier)) without padding.

    Args:
        verifier: The code verifier string
        sha256: Optional hash capability

    Returns:
        Base64url-encoded SHA256 hash
    """
    hasher = sha256 or HashlibSha256()
    return base64url_encode(hasher(verifier.encode("ascii")))


def create_pkce_pair(
    random_bytes: RandomBytes | None = None,
    sha256: Sha256Hasher | None = None,
) -> PKCEPair:
    """Create a new PKCE code verifier/challenge pair.

    Args:
        random_bytes: Optional randomness source
        sha256: Optional hash capability

    Returns:
        PKCEPair with a 64-character verifier and its S256 challenge
    """
    verifier = generate_code_verifier(random_bytes=random_bytes)
    challenge = generate_code_challenge(verifier, sha256)
    return PKCEPair(code_verifier=verifier, code_challenge=challenge)
