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
Composition root: builds every component once and wires them into the FastAPI application.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from starlette.middleware.sessions import SessionMiddleware

from graph_sso.config import SSOConfig
from graph_sso.dependencies import AppServices, get_services
from graph_sso.exceptions import LoginRequiredError, NotInitializedError
from graph_sso.graph_client import GraphClient
from graph_sso.id_token import IdTokenValidator
from graph_sso.middleware import LOGIN_PATH, TokenValidityMiddleware
from graph_sso.oauth_client import OAuthClient
from graph_sso.oidc_provider import OIDCProvider
from graph_sso.routes import api_router, auth_router, pages_router
from graph_sso.session import SessionBinder
from graph_sso.token_cache import TokenCache, TokenStoreProtocol
from graph_sso.utils.logger import logger

SESSION_COOKIE = "graph_sso_session"


def build_services(
    config: SSOConfig,
    client: httpx.AsyncClient | None = None,
    token_cache: TokenStoreProtocol | None = None,
) -> AppServices:
    """
    Builds the application's components.

    Args:
        config: The configuration object.
        client: External async client (optional). If not provided, one is created with the configured timeout.
        token_cache: Token store (optional). Defaults to an in-memory `TokenCache`.
    """
    http_client = client or httpx.AsyncClient(timeout=config.http_timeout)

    # Instrument the client for distributed tracing
    HTTPXClientInstrumentor().instrument_client(http_client)

    provider = OIDCProvider(config.discovery_url, http_client)
    cache = token_cache or TokenCache()
    oauth_client = OAuthClient(
        provider=provider,
        client_id=config.client_id,
        client_secret=config.client_secret,
        redirect_uri=config.redirect_uri,
        client=http_client,
        scope=config.scope,
        response_mode=config.response_mode,
        id_token_validator=IdTokenValidator(provider, config.client_id),
    )
    return AppServices(
        config=config,
        http_client=http_client,
        provider=provider,
        oauth_client=oauth_client,
        token_cache=cache,
        session_binder=SessionBinder(),
        graph_client=GraphClient(config.graph_base_url, http_client, cache),
    )


def create_app(
    config: SSOConfig | None = None,
    client: httpx.AsyncClient | None = None,
    token_cache: TokenStoreProtocol | None = None,
) -> FastAPI:
    """
    Application factory.

    Discovery runs in the lifespan startup hook; a `DiscoveryError` there aborts startup.

    Args:
        config: The configuration object. Loaded from the environment when omitted.
        client: External async client (optional). An external client is not closed on shutdown.
        token_cache: Token store (optional).
    """
    config = config or SSOConfig()  # type: ignore[call-arg]
    services = build_services(config, client=client, token_cache=token_cache)
    owns_client = client is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if config.uses_default_session_secret:
            logger.warning("SESSION_SECRET is the built-in default. Set a secure value outside local development.")
        try:
            await services.provider.discover()
            logger.info("OpenID client initialized successfully")
            yield
        finally:
            if owns_client:
                await services.http_client.aclose()

    app = FastAPI(title="Microsoft SSO Example", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    # Last added runs first: the session must be loaded before the token check
    app.add_middleware(TokenValidityMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret.get_secret_value(),
        session_cookie=SESSION_COOKIE,
        max_age=config.session_max_age,
        same_site=config.cookie_same_site,
        https_only=config.is_production,
    )

    app.include_router(pages_router)
    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health(request: Request) -> dict[str, object]:
        return {"status": "ok", "initialized": get_services(request).provider.is_initialized}

    @app.exception_handler(LoginRequiredError)
    async def login_required_handler(request: Request, exc: LoginRequiredError) -> Response:
        return RedirectResponse(LOGIN_PATH, status_code=status.HTTP_302_FOUND)

    @app.exception_handler(NotInitializedError)
    async def not_initialized_handler(request: Request, exc: NotInitializedError) -> Response:
        logger.error(f"{request.method} {request.url.path} before discovery completed")
        return PlainTextResponse("OpenID client not initialized", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"]})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Validation error", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An unexpected error occurred. Please try again later."},
        )

    return app
