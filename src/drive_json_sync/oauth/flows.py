"""OAuth 2.0 Authorization Code flow with PKCE for Google accounts.

Each operation takes every input explicitly; the flow object only holds
the injected HTTP client and the randomness/hash capabilities.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from drive_json_sync.exceptions import AuthExchangeError, AuthRefreshError, ProtocolError
from drive_json_sync.logging_config import get_logger
from drive_json_sync.oauth.pkce import PKCEPair, create_pkce_pair
from drive_json_sync.responses import raise_for_response, read_json, send
from drive_json_sync.security import RandomBytes, Sha256Hasher, redact

logger = get_logger(__name__)

GOOGLE_AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

# Default HTTP timeout for OAuth requests
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class TokenSet:
    """OAuth 2.0 token set returned by the token endpoint.

    ``refresh_token`` is None when the response omitted it. For refresh
    responses that means "keep the one you have", not revocation; see
    ``merge_refresh_token``.
    """

    access_token: str
    expires_in: int
    scope: str
    token_type: str
    refresh_token: str | None = None

    @classmethod
    def from_token_response(cls, response: dict[str, Any]) -> TokenSet:
        """Create TokenSet from an OAuth token response.

        Args:
            response: Decoded token endpoint response

        Returns:
            TokenSet instance

        Raises:
            KeyError: If ``access_token`` is missing
            ValueError: If ``access_token`` is not a non-empty string
        """
        access_token = response["access_token"]
        if not isinstance(access_token, str) or not access_token:
            msg = "access_token must be a non-empty string"
            raise ValueError(msg)

        return cls(
            access_token=access_token,
            expires_in=int(response.get("expires_in", 0)),
            scope=response.get("scope", ""),
            token_type=response.get("token_type", "Bearer"),
            refresh_token=response.get("refresh_token"),
        )

    def expires_at(self, issued_at: datetime) -> datetime:
        """Absolute expiry time for a token set issued at ``issued_at``."""
        return issued_at + timedelta(seconds=self.expires_in)

    def merge_refresh_token(self, previous: str | None) -> TokenSet:
        """Return a copy that keeps ``previous`` if no refresh token was issued."""
        if self.refresh_token or not previous:
            return self
        return replace(self, refresh_token=previous)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the token endpoint's field names."""
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "expires_in": self.expires_in,
            "scope": self.scope,
            "token_type": self.token_type,
        }
        if self.refresh_token is not None:
            data["refresh_token"] = self.refresh_token
        return data


@dataclass(frozen=True)
class AuthorizationRequest:
    """Parameters of a consent request."""

    client_id: str
    redirect_uri: str
    scope: str
    state: str
    code_challenge: str

    def query_params(self) -> dict[str, str]:
        """Query parameters for the authorization endpoint."""
        return {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "code_challenge": self.code_challenge,
            "code_challenge_method": "S256",
            # Both are needed for Google to issue a refresh token every time
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": self.state,
        }


@dataclass(frozen=True)
class TokenRequest:
    """Parameters of an authorization code exchange."""

    client_id: str
    code: str
    code_verifier: str
    redirect_uri: str

    def form_data(self) -> dict[str, str]:
        """URL-encoded form fields for the token endpoint."""
        return {
            "client_id": self.client_id,
            "code": self.code,
            "code_verifier": self.code_verifier,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }


class GoogleOAuthFlow:
    """Google OAuth 2.0 Authorization Code flow with PKCE.

    Example:
        ```python
        async with GoogleOAuthFlow() as flow:
            pkce = flow.create_pkce_pair()
            url = flow.create_authorization_url(
                client_id, redirect_uri, scope, state, pkce.code_challenge
            )
            # ... user consents, redirect delivers ``code`` ...
            tokens = await flow.exchange_auth_code(
                client_id, code, pkce.code_verifier, redirect_uri
            )
        ```
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        random_bytes: RandomBytes | None = None,
        sha256: Sha256Hasher | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the flow.

        Args:
            http_client: Optional custom HTTP client
            random_bytes: Optional randomness source for PKCE verifiers
            sha256: Optional hash capability for PKCE challenges
            timeout: Timeout for the HTTP client created when none is given
        """
        self._http_client = http_client
        self._owns_client = http_client is None
        self._random_bytes = random_bytes
        self._sha256 = sha256
        self._timeout = timeout

    async def __aenter__(self) -> GoogleOAuthFlow:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def create_pkce_pair(self) -> PKCEPair:
        """Create a PKCE pair using the configured capabilities."""
        return create_pkce_pair(self._random_bytes, self._sha256)

    def create_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        scope: str,
        state: str,
        code_challenge: str,
    ) -> str:
        """Build the consent URL.

        Inputs are passed through verbatim without validation.

        Args:
            client_id: OAuth client identifier
            redirect_uri: Registered redirect URI
            scope: Space-separated scopes
            state: Caller-generated anti-CSRF value
            code_challenge: PKCE S256 challenge

        Returns:
            Authorization endpoint URL with query parameters
        """
        request = AuthorizationRequest(
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            state=state,
            code_challenge=code_challenge,
        )
        logger.debug("Created authorization URL for client %s", client_id)
        return f"{GOOGLE_AUTHORIZATION_ENDPOINT}?{urlencode(request.query_params())}"

    async def exchange_auth_code(
        self,
        client_id: str,
        code: str,
        code_verifier: str,
        redirect_uri: str,
    ) -> TokenSet:
        """Exchange an authorization code for a token set.

        Args:
            client_id: OAuth client identifier
            code: Authorization code from the redirect
            code_verifier: PKCE verifier matching the challenge sent earlier
            redirect_uri: Redirect URI used in the authorization request

        Returns:
            TokenSet from the token endpoint

        Raises:
            AuthExchangeError: If the token endpoint returns a non-2xx status
            TransportError: If the request could not be completed
        """
        request = TokenRequest(
            client_id=client_id,
            code=code,
            code_verifier=code_verifier,
            redirect_uri=redirect_uri,
        )
        logger.debug(
            "Exchanging authorization code (code: %s, verifier: %s)",
            redact(code),
            redact(code_verifier),
        )
        tokens = await self._request_tokens(request.form_data(), AuthExchangeError)
        logger.info("Successfully exchanged code for tokens (scope: %s)", tokens.scope or "N/A")
        return tokens

    async def refresh_access_token(self, client_id: str, refresh_token: str) -> TokenSet:
        """Use a refresh token to obtain a new access token.

        The returned set's ``refresh_token`` is None when the endpoint did
        not issue a new one; callers keep their previous value in that case.

        Args:
            client_id: OAuth client identifier
            refresh_token: Previously issued refresh token

        Returns:
            TokenSet with a fresh access token

        Raises:
            AuthRefreshError: If the token endpoint returns a non-2xx status
            TransportError: If the request could not be completed
        """
        data = {
            "client_id": client_id,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        logger.debug("Refreshing access token (refresh token: %s)", redact(refresh_token))
        tokens = await self._request_tokens(data, AuthRefreshError)
        logger.info("Successfully refreshed access token")
        return tokens

    async def _request_tokens(
        self,
        data: dict[str, str],
        error_class: type[ProtocolError],
    ) -> TokenSet:
        client = await self._get_client()
        request = client.build_request(
            "POST",
            GOOGLE_TOKEN_ENDPOINT,
            data=data,
            headers={"Accept": "application/json"},
        )
        response = await send(client, request, error_class)
        await raise_for_response(response, error_class)
        payload = await read_json(response, error_class)

        try:
            return TokenSet.from_token_response(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            message = f"{error_class.prefix}: invalid token response"
            raise error_class(message) from e
