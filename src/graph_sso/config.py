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
Configuration for the graph-sso application.
"""

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_SECRET = "graph-sso-unsafe-default-session-secret"


class SSOConfig(BaseSettings):
    """
    Configuration settings for graph-sso.

    Attributes:
        tenant_id (str): The directory (tenant) identifier, or one of `common`/`organizations`/`consumers`.
        client_id (str): The application (client) ID registered with the provider.
        client_secret (SecretStr): The client secret used at the token endpoint.
        redirect_uri (str): The callback URL registered with the provider.
        authority_host (str): Base URL of the identity provider.
        graph_base_url (str): Base URL of the Graph API.
        scope (str): Space-separated scopes requested at login.
        response_mode (str): How the provider returns the authorization response.
        http_timeout (float): Timeout in seconds for every outbound call.
        session_secret (SecretStr): Key used to sign the session cookie.
        session_max_age (int): Session cookie lifetime in seconds.
        environment (str): Deployment environment. `production` enables secure cookies.
        host (str): Interface the server binds to.
        port (int): Port the server listens on.
        unsafe_local_dev (bool): Allows plain HTTP provider URLs for local testing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    tenant_id: str
    client_id: str
    client_secret: SecretStr
    redirect_uri: str

    authority_host: str = "https://login.microsoftonline.com"
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    scope: str = "openid profile email"
    response_mode: str = "form_post"
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for all IdP network operations.")

    session_secret: SecretStr = SecretStr(DEFAULT_SESSION_SECRET)
    session_max_age: int = Field(default=24 * 60 * 60, gt=0)
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
    )

    host: str = "127.0.0.1"
    port: int = 3000
    unsafe_local_dev: bool = False

    @field_validator("tenant_id", "client_id", "redirect_uri")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """
        Rejects blank values and surrounding whitespace.
        """
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("tenant_id")
    @classmethod
    def validate_tenant(cls, v: str) -> str:
        if "/" in v or "?" in v or "#" in v:
            raise ValueError(f"Invalid tenant identifier: {v!r}")
        return v

    @field_validator("authority_host", "graph_base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def validate_https(self) -> "SSOConfig":
        """
        Ensures that provider URLs use HTTPS, unless strictly opted out for local dev.
        """
        if self.unsafe_local_dev:
            return self
        for name in ("authority_host", "graph_base_url"):
            value = getattr(self, name)
            if not value.startswith("https://"):
                raise ValueError(
                    f"HTTPS is required for {name}. Set 'unsafe_local_dev=True' only for local testing."
                )
        return self

    @property
    def discovery_url(self) -> str:
        """The OpenID discovery document URL for the configured tenant."""
        return f"{self.authority_host}/{self.tenant_id}/v2.0/.well-known/openid-configuration"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def cookie_same_site(self) -> str:
        """
        SameSite policy for the session cookie.

        A `form_post` callback is a cross-site POST, which only carries `SameSite=None` cookies; browsers
        accept those only over HTTPS, so the relaxed policy is reserved for production.
        """
        if self.is_production and self.response_mode == "form_post":
            return "none"
        return "lax"

    @property
    def uses_default_session_secret(self) -> bool:
        return self.session_secret.get_secret_value() == DEFAULT_SESSION_SECRET
