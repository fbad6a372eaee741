# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from pydantic import SecretStr

from graph_sso.config import SSOConfig

TENANT = "tenant-123"
CLIENT_ID = "11111111-2222-3333-4444-555555555555"
CLIENT_SECRET = "test-client-secret"
REDIRECT_URI = "http://localhost:3000/auth/callback"
AUTHORITY = "https://login.example.com"
GRAPH = "https://graph.example.com/v1.0"

DISCOVERY_URL = f"{AUTHORITY}/{TENANT}/v2.0/.well-known/openid-configuration"
AUTHORIZATION_ENDPOINT = f"{AUTHORITY}/{TENANT}/oauth2/v2.0/authorize"
TOKEN_ENDPOINT = f"{AUTHORITY}/{TENANT}/oauth2/v2.0/token"
USERINFO_ENDPOINT = "https://graph.example.com/oidc/userinfo"
JWKS_URI = f"{AUTHORITY}/{TENANT}/discovery/v2.0/keys"
ISSUER = f"{AUTHORITY}/{TENANT}/v2.0"

METADATA = {
    "issuer": ISSUER,
    "authorization_endpoint": AUTHORIZATION_ENDPOINT,
    "token_endpoint": TOKEN_ENDPOINT,
    "userinfo_endpoint": USERINFO_ENDPOINT,
    "jwks_uri": JWKS_URI,
    "end_session_endpoint": f"{AUTHORITY}/{TENANT}/oauth2/v2.0/logout",
    "response_modes_supported": ["query", "fragment", "form_post"],
}

TOKEN_RESPONSE = {
    "access_token": "access-token-value",
    "token_type": "Bearer",
    "expires_in": 3600,
    "refresh_token": "refresh-token-value",
    "scope": "openid profile email",
}

USERINFO = {
    "sub": "user-sub-1",
    "name": "Alice Example",
    "email": "alice@example.com",
    "preferred_username": "alice@example.com",
}


class FakeIdP:
    """
    In-process identity provider and Graph API backed by `httpx.MockTransport`.

    Routes are keyed by method and URL without query string. Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, dict[str, str], bytes]] = {}
        self.requests: list[httpx.Request] = []
        self.set_json("GET", DISCOVERY_URL, METADATA)
        self.set_json("POST", TOKEN_ENDPOINT, TOKEN_RESPONSE)
        self.set_json("GET", USERINFO_ENDPOINT, USERINFO)

    def set_json(self, method: str, url: str, payload: Any, status: int = 200) -> None:
        content = httpx.Response(status, json=payload).content
        self.routes[(method, url)] = (status, {"Content-Type": "application/json"}, content)

    def set_bytes(self, method: str, url: str, content: bytes, status: int = 200, content_type: str = "") -> None:
        headers = {"Content-Type": content_type} if content_type else {}
        self.routes[(method, url)] = (status, headers, content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        route = self.routes.get((request.method, url))
        if route is None:
            return httpx.Response(404, json={"error": "not_found"})
        status, headers, content = route
        return httpx.Response(status, headers=headers, content=content)

    def calls_to(self, url: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if str(r.url).split("?", 1)[0] == url and (method is None or r.method == method)
        ]

    def form_of(self, request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode("utf-8")).items()}

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_idp() -> FakeIdP:
    return FakeIdP()


@pytest.fixture
def http_client(fake_idp: FakeIdP) -> httpx.AsyncClient:
    return fake_idp.client()


@pytest.fixture
def config() -> SSOConfig:
    return SSOConfig(
        tenant_id=TENANT,
        client_id=CLIENT_ID,
        client_secret=SecretStr(CLIENT_SECRET),
        redirect_uri=REDIRECT_URI,
        authority_host=AUTHORITY,
        graph_base_url=GRAPH,
        session_secret=SecretStr("test-session-secret"),
        _env_file=None,
    )


def start_login(client: Any) -> str:
    """Calls the login route on a `TestClient` and returns the state sent to the provider."""
    response = client.get("/auth/login")
    assert response.status_code == 302
    return parse_qs(urlsplit(response.headers["location"]).query)["state"][0]


def sign_in(client: Any, code: str = "auth-code") -> httpx.Response:
    """Runs a full login through a `TestClient` against the fake provider."""
    state = start_login(client)
    return client.post("/auth/callback", data={"code": code, "state": state})
