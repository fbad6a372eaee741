# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

from graph_sso.exceptions import (
    CsrfValidationError,
    DiscoveryError,
    ExpiredTokenError,
    GraphAPIError,
    GraphSSOError,
    IdTokenValidationError,
    LoginRequiredError,
    NotInitializedError,
    OversizedResponseError,
    ProviderResponseError,
    TokenExchangeError,
    UserInfoError,
)


def test_exception_hierarchy() -> None:
    """Test that all custom exceptions inherit from GraphSSOError."""
    for exc in (
        CsrfValidationError,
        DiscoveryError,
        ExpiredTokenError,
        LoginRequiredError,
        NotInitializedError,
        OversizedResponseError,
        ProviderResponseError,
    ):
        assert issubclass(exc, GraphSSOError)

    assert issubclass(TokenExchangeError, ProviderResponseError)
    assert issubclass(UserInfoError, ProviderResponseError)
    assert issubclass(GraphAPIError, ProviderResponseError)
    assert issubclass(IdTokenValidationError, TokenExchangeError)


def test_exception_instantiation() -> None:
    """Test that exceptions can be instantiated."""
    err = CsrfValidationError("State verification failed")
    assert str(err) == "State verification failed"


def test_provider_response_error_carries_status_and_body() -> None:
    err = TokenExchangeError("Token exchange failed", status_code=400, body='{"error":"invalid_grant"}')
    assert str(err) == "Token exchange failed"
    assert err.status_code == 400
    assert "invalid_grant" in err.body

    bare = UserInfoError("boom")
    assert bare.status_code is None
    assert bare.body == ""
