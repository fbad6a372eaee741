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
Request middleware that forces a fresh login once the cached access token has expired.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from graph_sso.dependencies import get_services
from graph_sso.utils.logger import logger

LOGIN_PATH = "/auth/login"

# The login flow itself must stay reachable for sessions holding an expired token
_EXEMPT_PREFIXES = ("/auth/",)


class TokenValidityMiddleware(BaseHTTPMiddleware):
    """
    Redirects to the login route when the session's user has a cached token that is expired.

    No silent refresh is attempted, even when a refresh token was issued. Requires
    `SessionMiddleware` to be installed outside this middleware.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if "session" not in request.scope or request.url.path.startswith(_EXEMPT_PREFIXES):
            return await call_next(request)

        services = get_services(request)
        user_id = services.session_binder.user_id(request.session)
        if user_id:
            record = services.token_cache.get(user_id)
            if record is not None and services.token_cache.is_expired(record):
                logger.info("Token expired, redirecting to login")
                return RedirectResponse(LOGIN_PATH, status_code=302)

        return await call_next(request)
