"""OAuth 2.0 module for Drive JSON Sync.

Provides the Google Authorization Code flow with PKCE.
"""

from drive_json_sync.oauth.flows import (
    AuthorizationRequest,
    GoogleOAuthFlow,
    TokenRequest,
    TokenSet,
)
from drive_json_sync.oauth.pkce import (
    PKCEPair,
    create_pkce_pair,
    generate_code_challenge,
    generate_code_verifier,
)

__all__ = [
    "AuthorizationRequest",
    "GoogleOAuthFlow",
    "PKCEPair",
    "TokenRequest",
    "TokenSet",
    "create_pkce_pair",
    "generate_code_challenge",
    "generate_code_verifier",
]
