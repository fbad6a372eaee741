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
Data models for the graph-sso package.
"""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AuthRequestState(BaseModel):
    """
    CSRF `state` and replay `nonce` for one login attempt.

    Created per login, stored in the caller's session, consumed exactly once at callback.
    """

    model_config = ConfigDict(frozen=True)

    state: str = Field(..., min_length=1)
    nonce: str = Field(..., min_length=1)


class TokenRecord(BaseModel):
    """
    Tokens returned by the token endpoint, stamped with the time they were issued.

    This model is frozen (immutable). Token values are `SecretStr` so they never leak through
    logging or `repr()`.

    Attributes:
        access_token (SecretStr): The access token issued by the authorization server.
        token_type (str): The type of the token (e.g. "Bearer").
        expires_in (int): The declared lifetime in seconds of the access token.
        issued_at (float): Epoch seconds at which the token response was received.
        refresh_token (SecretStr | None): The refresh token, if issued. Stored but never used.
        id_token (SecretStr | None): The ID token, if issued.
        scope (str | None): The scopes actually granted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: SecretStr
    token_type: str
    expires_in: int
    issued_at: float = Field(default_factory=time.time)
    refresh_token: SecretStr | None = None
    id_token: SecretStr | None = None
    scope: str | None = None

    @property
    def expires_at(self) -> float:
        """Epoch seconds at which the access token stops being valid."""
        return self.issued_at + self.expires_in

    def authorization_header(self) -> dict[str, str]:
        """
        Builds the `Authorization` header for calls made on behalf of the user.
        """
        token_type = "Bearer" if self.token_type.lower() == "bearer" else self.token_type
        return {"Authorization": f"{token_type} {self.access_token.get_secret_value()}"}

    @classmethod
    def from_token_response(cls, data: dict[str, Any], issued_at: float | None = None) -> "TokenRecord":
        """
        Parses a token endpoint JSON body.

        Args:
            data: The decoded JSON body.
            issued_at: The receipt time. Defaults to now.

        Raises:
            pydantic.ValidationError: If required fields are missing or malformed.
        """
        payload = dict(data)
        payload["issued_at"] = time.time() if issued_at is None else issued_at
        return cls(**payload)
