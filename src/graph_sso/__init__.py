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
Session-backed Microsoft SSO example: OAuth2 authorization-code login plus Graph API pass-through calls.
"""

__version__ = "0.1.0"

from .config import SSOConfig
from .exceptions import (
    CsrfValidationError,
    DiscoveryError,
    ExpiredTokenError,
    GraphSSOError,
    NotInitializedError,
    TokenExchangeError,
    UserInfoError,
)
from .models import AuthRequestState, TokenRecord
from .oauth_client import OAuthClient
from .oidc_provider import OIDCProvider
from .token_cache import TokenCache

__all__ = [
    "AuthRequestState",
    "CsrfValidationError",
    "DiscoveryError",
    "ExpiredTokenError",
    "GraphSSOError",
    "NotInitializedError",
    "OAuthClient",
    "OIDCProvider",
    "SSOConfig",
    "TokenCache",
    "TokenExchangeError",
    "TokenRecord",
    "UserInfoError",
]
