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
Component container owned by the composition root, and the FastAPI dependencies that read it.
"""

from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import Request

from graph_sso.config import SSOConfig
from graph_sso.exceptions import LoginRequiredError
from graph_sso.graph_client import GraphClient
from graph_sso.oauth_client import OAuthClient
from graph_sso.oidc_provider import OIDCProvider
from graph_sso.session import SessionBinder
from graph_sso.token_cache import TokenStoreProtocol


@dataclass
class AppServices:
    """Every long-lived component of the application, built once by `create_app`."""

    config: SSOConfig
    http_client: httpx.AsyncClient
    provider: OIDCProvider
    oauth_client: OAuthClient
    token_cache: TokenStoreProtocol
    session_binder: SessionBinder
    graph_client: GraphClient


def get_services(request: Request) -> AppServices:
    return request.app.state.services  # type: ignore[no-any-return]


def require_auth(request: Request) -> dict[str, Any]:
    """
    Passes only for sessions carrying an authenticated identity.

    Otherwise the requested path is remembered in the session and `LoginRequiredError` is raised,
    which the application turns into a redirect to the login route.

    Returns:
        The session's user identity.
    """
    binder = get_services(request).session_binder
    if binder.is_authenticated(request.session):
        return binder.current_user(request.session)  # type: ignore[return-value]

    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    binder.remember_return_to(request.session, target)
    raise LoginRequiredError(target)
