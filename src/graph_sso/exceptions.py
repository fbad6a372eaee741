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
Custom exceptions for the graph-sso package.
"""


class GraphSSOError(Exception):
    """Base exception for all graph-sso errors."""


class DiscoveryError(GraphSSOError):
    """Raised when the provider metadata document cannot be fetched or parsed. Fatal at startup."""


class NotInitializedError(GraphSSOError):
    """Raised when the OAuth client is used before discovery has completed."""


class CsrfValidationError(GraphSSOError):
    """Raised when the callback `state` does not match the one stored in the session."""


class ProviderResponseError(GraphSSOError):
    """
    Raised when the identity provider answers with a non-success status.

    Attributes:
        status_code (int | None): The HTTP status returned by the provider, if any.
        body (str): The raw error body. Logged server-side only.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExchangeError(ProviderResponseError):
    """Raised when the authorization code cannot be exchanged for a token."""


class IdTokenValidationError(TokenExchangeError):
    """Raised when the returned id_token fails signature or claim checks."""


class UserInfoError(ProviderResponseError):
    """Raised when the userinfo endpoint rejects the access token or returns garbage."""


class GraphAPIError(ProviderResponseError):
    """Raised when a Graph API call fails."""


class ExpiredTokenError(GraphSSOError):
    """Raised when the cached token for a user is missing or expired."""


class OversizedResponseError(GraphSSOError):
    """Raised when an HTTP response is too large."""


class LoginRequiredError(GraphSSOError):
    """Raised by the request gate when the session is not authenticated."""
