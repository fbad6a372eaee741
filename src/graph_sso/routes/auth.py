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
Login, callback and logout routes.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from graph_sso.dependencies import get_services
from graph_sso.exceptions import CsrfValidationError, NotInitializedError, TokenExchangeError, UserInfoError
from graph_sso.identity import enrich_user_info
from graph_sso.utils.logger import logger

router = APIRouter(prefix="/auth", tags=["Authentication"])

DEFAULT_LANDING_PATH = "/profile"


def _not_initialized() -> PlainTextResponse:
    return PlainTextResponse("OpenID client not initialized", status_code=500)


@router.get("/login")
async def login(request: Request) -> Response:
    """Starts a login: stores a fresh state/nonce in the session and redirects to the provider."""
    services = get_services(request)
    oauth_client = services.oauth_client
    if not oauth_client.is_initialized:
        return _not_initialized()

    auth_request = oauth_client.new_auth_request()
    services.session_binder.begin_login(request.session, auth_request)
    return RedirectResponse(oauth_client.authorization_url(auth_request), status_code=302)


@router.api_route("/callback", methods=["GET", "POST"])
async def callback(request: Request) -> Response:
    """
    Completes a login. `form_post` responses arrive as a form POST, `query` responses as a GET.
    """
    services = get_services(request)
    oauth_client = services.oauth_client
    binder = services.session_binder
    if not oauth_client.is_initialized:
        return _not_initialized()

    params = await request.form() if request.method == "POST" else request.query_params

    def _param(name: str) -> str | None:
        value = params.get(name)
        return value if isinstance(value, str) else None

    expected = binder.consume_pending(request.session)

    try:
        record = await oauth_client.callback(
            _param("code"),
            _param("state"),
            expected,
            error=_param("error"),
            error_description=_param("error_description"),
        )
        claims = await oauth_client.userinfo(record)
    except CsrfValidationError:
        logger.warning("State verification failed on authentication callback")
        return PlainTextResponse("State verification failed", status_code=403)
    except NotInitializedError:
        return _not_initialized()
    except (TokenExchangeError, UserInfoError) as e:
        logger.error(f"Authentication error: {e} {e.body}")
        return PlainTextResponse("Authentication failed", status_code=500)

    identity = enrich_user_info(claims)
    services.token_cache.store(identity["sub"], record)
    binder.bind(request.session, identity)
    logger.debug(f"User {identity['sub']} signed in")

    return RedirectResponse(binder.pop_return_to(request.session) or DEFAULT_LANDING_PATH, status_code=302)


@router.get("/logout")
async def logout(request: Request) -> Response:
    """Clears the cached token and the session. Always redirects home."""
    services = get_services(request)
    services.session_binder.logout(request.session, services.token_cache)
    return RedirectResponse("/", status_code=302)
