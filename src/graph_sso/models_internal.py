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
Internal data models for the graph-sso package.
These are not exposed in the public API.
"""

from pydantic import BaseModel, ConfigDict, Field


class ProviderMetadata(BaseModel):
    """
    Provider metadata from .well-known/openid-configuration.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    issuer: str = Field(..., description="The OIDC issuer URL. May contain a '{tenantid}' placeholder.")
    authorization_endpoint: str = Field(..., description="The authorization endpoint URL.")
    token_endpoint: str = Field(..., description="The token endpoint URL.")
    userinfo_endpoint: str = Field(..., description="The userinfo endpoint URL.")
    jwks_uri: str | None = Field(default=None, description="The URL to the JWKS.")
