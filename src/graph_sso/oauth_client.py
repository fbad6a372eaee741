# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

"""
OAuthClient component for the OAuth 2.0 Authorization Code Grant (RFC 6749 section 4.1).
"""

import hmac
import time
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from authlib.common.security import generate_token
from authlib.common.urls import add_params_to_uri
from pydantic import SecretStr

from graph_sso.exceptions import CsrfValidationError, OversizedResponseError, TokenExchangeError, UserInfoError
from graph_sso.id_token import IdTokenValidator
from graph_sso.models import AuthRequestState, TokenRecord
from graph_sso.oidc_provider import OIDCProvider
from graph_sso.transport import fetch_bounded
from graph_sso.utils.logger import logger

STATE_LENGTH = 43


class AuthorizationUrlBuilder(Protocol):
    """Builds the browser redirect that starts a login."""

    def new_auth_request(self) -> AuthRequestState: ...

    def authorization_url(self, request_state: AuthRequestState) -> str: ...


class TokenExchanger(Protocol):
    """Validates the callback and exchanges the authorization code for tokens."""

    async def callback(
        self,
        code: str | None,
        state: str | None,
        expected: AuthRequestState | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> TokenRecord: ...


class UserInfoFetcher(Protocol):
    """Reads the authenticated user's claims."""

    async def userinfo(self, record: TokenRecord) -> dict[str, Any]: ...


def _constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class OAuthClient:
    """
    Confidential OAuth 2.0 / OIDC client bound to a single discovered provider.

    Implements `AuthorizationUrlBuilder`, `TokenExchanger` and `UserInfoFetcher`.

    Attributes:
        client_id (str): The registered client ID.
        redirect_uri (str): The registered callback URL.
        scope (str): Space-separated scopes requested at login.
        response_mode (str): How the provider delivers the authorization response.
    """

    def __init__(
        self,
        provider: OIDCProvider,
        client_id: str,
        client_secret: SecretStr,
        redirect_uri: str,
        client: httpx.AsyncClient,
        scope: str = "openid profile email",
        response_mode: str = "form_post",
        id_token_validator: IdTokenValidator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the OAuthClient.

        Args:
            provider: The provider whose metadata supplies every endpoint.
            client_id: The registered client ID.
            client_secret: The client secret sent to the token endpoint.
            redirect_uri: The registered callback URL.
            client: The async HTTP client to use for requests.
            scope: The scopes to request.
            response_mode: The authorization response mode (e.g. "form_post", "query").
            id_token_validator: Validator for returned id_tokens. When None, id_tokens are not checked.
            clock: Source of the current time, used to stamp token records.
        """
        self.provider = provider
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.client = client
        self.scope = scope
        self.response_mode = response_mode
        self.id_token_validator = id_token_validator
        self.clock = clock

    @property
    def is_initialized(self) -> bool:
        return self.provider.is_initialized

    def new_auth_request(self) -> AuthRequestState:
        """
        Generates a fresh CSRF state and replay nonce from a CSPRNG.
        """
        return AuthRequestState(state=generate_token(STATE_LENGTH), nonce=generate_token(STATE_LENGTH))

    def authorization_url(self, request_state: AuthRequestState) -> str:
        """
        Builds the authorization endpoint URL for a login attempt.

        Raises:
            NotInitializedError: If discovery has not completed.
        """
        endpoint = self.provider.metadata.authorization_endpoint
        params = [
            ("client_id", self.client_id),
            ("response_type", "code"),
            ("redirect_uri", self.redirect_uri),
            ("scope", self.scope),
            ("response_mode", self.response_mode),
            ("state", request_state.state),
            ("nonce", request_state.nonce),
        ]
        return add_params_to_uri(endpoint, params)

    async def callback(
        self,
        code: str | None,
        state: str | None,
        expected: AuthRequestState | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> TokenRecord:
        """
        Validates the callback state and exchanges the authorization code for tokens.

        Args:
            code: The `code` parameter of the callback.
            state: The `state` parameter of the callback.
            expected: The state/nonce stored in the session at login, if any.
            error: The `error` parameter, when the provider refused the authorization request.
            error_description: The accompanying `error_description`, if any.

        Returns:
            TokenRecord: The issued tokens, stamped with the receipt time.

        Raises:
            CsrfValidationError: If `state` does not exactly match the stored state. No token request is made.
            NotInitializedError: If discovery has not completed.
            TokenExchangeError: If the token endpoint rejects the code or returns an unusable body.
            IdTokenValidationError: If a returned id_token fails validation.
        """
        if expected is None or state is None or not _constant_time_equals(state, expected.state):
            raise CsrfValidationError("State verification failed")

        if error:
            logger.error(f"Authorization request refused by provider: {error} {error_description or ''}")
            raise TokenExchangeError(f"Authorization failed: {error}", body=error_description or "")

        if not code:
            raise TokenExchangeError("Callback did not carry an authorization code")

        token_endpoint = self.provider.metadata.token_endpoint
        data = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self.client_secret.get_secret_value(),
            "redirect_uri": self.redirect_uri,
            "code": code,
        }

        try:
            response = await fetch_bounded(
                self.client, token_endpoint, method="POST", data=data, headers={"Accept": "application/json"}
            )
        except (httpx.HTTPError, OversizedResponseError) as e:
            logger.error(f"Token request failed: {e}")
            raise TokenExchangeError(f"Token request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Token endpoint returned HTTP {response.status_code}: {response.text}")
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
            record = TokenRecord.from_token_response(payload, issued_at=self.clock())
        except ValueError as e:
            logger.error(f"Invalid token response: {e}")
            raise TokenExchangeError(
                f"Invalid token response: {e}", status_code=response.status_code, body=response.text
            ) from e

        if record.id_token is not None and self.id_token_validator is not None:
            await self.id_token_validator.validate(record.id_token.get_secret_value(), expected.nonce)

        logger.info("Authorization code exchanged successfully.")
        return record

    async def userinfo(self, record: TokenRecord) -> dict[str, Any]:
        """
        Fetches the user's claims from the userinfo endpoint.

        Raises:
            NotInitializedError: If discovery has not completed.
            UserInfoError: On non-success status, transport failure, or a body without `sub`.
        """
        userinfo_endpoint = self.provider.metadata.userinfo_endpoint

        try:
            response = await fetch_bounded(self.client, userinfo_endpoint, headers=record.authorization_header())
        except (httpx.HTTPError, OversizedResponseError) as e:
            logger.error(f"Userinfo request failed: {e}")
            raise UserInfoError(f"Userinfo request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Userinfo endpoint returned HTTP {response.status_code}: {response.text}")
            raise UserInfoError(
                f"Userinfo endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            claims = response.json()
        except ValueError as e:
            raise UserInfoError(f"Invalid userinfo response: {e}", body=response.text) from e

        if not isinstance(claims, dict) or not claims.get("sub"):
            raise UserInfoError("Userinfo response does not contain 'sub'", body=response.text)

        return claims
