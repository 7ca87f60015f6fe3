"""Tests for OAuth flow implementations."""

from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import respx

from drive_json_sync.exceptions import (
    AuthExchangeError,
    AuthRefreshError,
    ProtocolError,
    TransportError,
)
from drive_json_sync.oauth.flows import (
    GOOGLE_AUTHORIZATION_ENDPOINT,
    GOOGLE_TOKEN_ENDPOINT,
    GoogleOAuthFlow,
    TokenSet,
)

AUTH_URL_KEYS = {
    "client_id",
    "redirect_uri",
    "response_type",
    "scope",
    "code_challenge",
    "code_challenge_method",
    "access_type",
    "prompt",
    "include_granted_scopes",
    "state",
}


def form_fields(request: httpx.Request) -> dict[str, str]:
    parsed = parse_qs(request.content.decode("ascii"), strict_parsing=True)
    return {key: values[0] for key, values in parsed.items()}


class TestTokenSet:
    """Tests for TokenSet dataclass."""

    def test_from_token_response(self) -> None:
        """Test creating TokenSet from response."""
        token_set = TokenSet.from_token_response(
            {
                "access_token": "access123",
                "refresh_token": "refresh123",
                "expires_in": 3599,
                "token_type": "Bearer",
                "scope": "https://www.googleapis.com/auth/drive.file",
            }
        )

        assert token_set.access_token == "access123"
        assert token_set.refresh_token == "refresh123"
        assert token_set.expires_in == 3599
        assert token_set.token_type == "Bearer"
        assert token_set.scope == "https://www.googleapis.com/auth/drive.file"

    def test_missing_refresh_token_is_none(self) -> None:
        """Test that an omitted refresh token stays absent."""
        token_set = TokenSet.from_token_response({"access_token": "a", "expires_in": 10})
        assert token_set.refresh_token is None
        assert "refresh_token" not in token_set.to_dict()

    def test_null_access_token_rejected(self) -> None:
        """Test that a null access token is not accepted."""
        with pytest.raises(ValueError, match="non-empty string"):
            TokenSet.from_token_response({"access_token": None})

    def test_merge_refresh_token_keeps_previous(self) -> None:
        """Test that the prior refresh token is kept when none was issued."""
        token_set = TokenSet("a", 3600, "s", "Bearer")
        merged = token_set.merge_refresh_token("old-refresh")
        assert merged.refresh_token == "old-refresh"
        assert merged.access_token == "a"

    def test_merge_refresh_token_prefers_new(self) -> None:
        """Test that a newly issued refresh token wins."""
        token_set = TokenSet("a", 3600, "s", "Bearer", refresh_token="new-refresh")
        assert token_set.merge_refresh_token("old-refresh").refresh_token == "new-refresh"

    def test_expires_at(self) -> None:
        """Test absolute expiry calculation."""
        issued = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        token_set = TokenSet("a", 3600, "s", "Bearer")
        assert token_set.expires_at(issued) == datetime(2024, 1, 1, 13, 0, tzinfo=UTC)


class TestCreateAuthorizationUrl:
    """Tests for GoogleOAuthFlow.create_authorization_url."""

    def test_exact_query_parameters(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that the URL carries exactly the expected parameters."""
        url = oauth_flow.create_authorization_url(
            client_id="client-123.apps.googleusercontent.com",
            redirect_uri="http://127.0.0.1:8765/oauth/callback",
            scope="https://www.googleapis.com/auth/drive.file openid",
            state="state/with+specials&=",
            code_challenge="E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
        )

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == GOOGLE_AUTHORIZATION_ENDPOINT

        query = parse_qs(parts.query, strict_parsing=True)
        assert set(query) == AUTH_URL_KEYS
        assert all(len(values) == 1 for values in query.values())

        params = {key: values[0] for key, values in query.items()}
        assert params["response_type"] == "code"
        assert params["code_challenge_method"] == "S256"
        assert params["access_type"] == "offline"
        assert params["prompt"] == "consent"
        assert params["include_granted_scopes"] == "true"
        assert params["client_id"] == "client-123.apps.googleusercontent.com"
        assert params["redirect_uri"] == "http://127.0.0.1:8765/oauth/callback"
        assert params["scope"] == "https://www.googleapis.com/auth/drive.file openid"
        assert params["state"] == "state/with+specials&="
        assert params["code_challenge"] == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_does_not_leak_verifier(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that only the challenge reaches the authorization URL."""
        pkce = oauth_flow.create_pkce_pair()
        url = oauth_flow.create_authorization_url(
            "client", "http://localhost/cb", "scope", "state", pkce.code_challenge
        )
        assert pkce.code_verifier not in url

    def test_pkce_pair_uses_injected_capabilities(self, random_bytes: object) -> None:
        """Test that the flow passes its randomness source to PKCE."""
        flow = GoogleOAuthFlow(random_bytes=random_bytes)  # type: ignore[arg-type]
        assert flow.create_pkce_pair() == flow.create_pkce_pair()


class TestExchangeAuthCode:
    """Tests for GoogleOAuthFlow.exchange_auth_code."""

    @respx.mock
    async def test_success(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that a 200 response is returned as a TokenSet."""
        route = respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(
                200,
                json={
                    "access_token": "a",
                    "expires_in": 3600,
                    "scope": "s",
                    "token_type": "Bearer",
                },
            )
        )

        tokens = await oauth_flow.exchange_auth_code(
            "client-id", "auth-code", "the-verifier", "http://localhost/cb"
        )

        assert tokens == TokenSet(access_token="a", expires_in=3600, scope="s", token_type="Bearer")
        assert route.call_count == 1

    @respx.mock
    async def test_sends_form_encoded_body(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test the exact form fields sent to the token endpoint."""
        route = respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"access_token": "a", "expires_in": 1})
        )

        await oauth_flow.exchange_auth_code(
            "client-id", "4/0Ab code", "the-verifier", "http://localhost/cb"
        )

        request = route.calls[0].request
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert form_fields(request) == {
            "client_id": "client-id",
            "code": "4/0Ab code",
            "code_verifier": "the-verifier",
            "redirect_uri": "http://localhost/cb",
            "grant_type": "authorization_code",
        }

    @respx.mock
    async def test_error_message_from_json(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that error.message is appended to the prefix."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(400, json={"error": {"message": "invalid_grant"}})
        )

        with pytest.raises(AuthExchangeError) as exc_info:
            await oauth_flow.exchange_auth_code("c", "code", "v", "http://localhost/cb")

        assert exc_info.value.message == "Failed to exchange authorization code: invalid_grant"
        assert str(exc_info.value).endswith(": invalid_grant")
        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value, ProtocolError)

    @respx.mock
    async def test_oauth_style_error_uses_raw_body(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that other JSON error shapes fall back to the raw body."""
        body = '{"error": "invalid_grant", "error_description": "Bad Request"}'
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(return_value=httpx.Response(400, text=body))

        with pytest.raises(AuthExchangeError) as exc_info:
            await oauth_flow.exchange_auth_code("c", "code", "v", "http://localhost/cb")

        assert exc_info.value.message == f"Failed to exchange authorization code: {body}"

    @respx.mock
    async def test_transport_failure(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that connection errors surface as TransportError without retry."""
        route = respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            side_effect=httpx.ConnectError("name resolution failed")
        )

        with pytest.raises(TransportError, match="name resolution failed"):
            await oauth_flow.exchange_auth_code("c", "code", "v", "http://localhost/cb")

        assert route.call_count == 1

    @respx.mock
    async def test_missing_access_token(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that a 200 without access_token is reported, not a KeyError."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"expires_in": 3600})
        )

        with pytest.raises(AuthExchangeError, match="invalid token response"):
            await oauth_flow.exchange_auth_code("c", "code", "v", "http://localhost/cb")

    @pytest.mark.parametrize("access_token", [None, "", 42])
    @respx.mock
    async def test_unusable_access_token(
        self, oauth_flow: GoogleOAuthFlow, access_token: object
    ) -> None:
        """Test that a null, empty or non-string access_token is rejected."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"access_token": access_token, "expires_in": 1})
        )

        with pytest.raises(AuthExchangeError) as exc_info:
            await oauth_flow.exchange_auth_code("c", "code", "v", "http://localhost/cb")

        assert exc_info.value.message == (
            "Failed to exchange authorization code: invalid token response"
        )


class TestRefreshAccessToken:
    """Tests for GoogleOAuthFlow.refresh_access_token."""

    @respx.mock
    async def test_does_not_fabricate_refresh_token(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that an omitted refresh_token stays absent."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(
                200,
                json={
                    "access_token": "new-access",
                    "expires_in": 3599,
                    "scope": "s",
                    "token_type": "Bearer",
                },
            )
        )

        tokens = await oauth_flow.refresh_access_token("client-id", "refresh-token")

        assert tokens.access_token == "new-access"
        assert tokens.refresh_token is None

    @respx.mock
    async def test_sends_form_encoded_body(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test the exact form fields sent to the token endpoint."""
        route = respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(
                200, json={"access_token": "a", "expires_in": 1, "refresh_token": "rotated"}
            )
        )

        tokens = await oauth_flow.refresh_access_token("client-id", "refresh-token")

        assert tokens.refresh_token == "rotated"
        assert form_fields(route.calls[0].request) == {
            "client_id": "client-id",
            "refresh_token": "refresh-token",
            "grant_type": "refresh_token",
        }

    @respx.mock
    async def test_failure(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that a non-2xx refresh raises AuthRefreshError."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(
                401, json={"error": {"message": "Token has been expired or revoked."}}
            )
        )

        with pytest.raises(AuthRefreshError) as exc_info:
            await oauth_flow.refresh_access_token("client-id", "refresh-token")

        assert exc_info.value.message == (
            "Failed to refresh access token: Token has been expired or revoked."
        )
        assert str(exc_info.value).startswith("[401] ")

    @respx.mock
    async def test_null_access_token(self, oauth_flow: GoogleOAuthFlow) -> None:
        """Test that a refresh response with a null access_token is rejected."""
        respx.post(GOOGLE_TOKEN_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"access_token": None})
        )

        with pytest.raises(AuthRefreshError, match="invalid token response"):
            await oauth_flow.refresh_access_token("client-id", "refresh-token")


class TestClientLifecycle:
    """Tests for HTTP client ownership."""

    async def test_injected_client_is_not_closed(self) -> None:
        """Test that a caller-supplied client stays open."""
        http_client = httpx.AsyncClient()
        async with GoogleOAuthFlow(http_client=http_client):
            pass
        assert not http_client.is_closed
        await http_client.aclose()

    async def test_owned_client_is_closed(self) -> None:
        """Test that a lazily created client is closed on exit."""
        flow = GoogleOAuthFlow()
        client = await flow._get_client()
        await flow.close()
        assert client.is_closed
