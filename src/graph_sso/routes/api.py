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
JSON routes proxying the signed-in user's Graph API data.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from graph_sso.dependencies import get_services, require_auth
from graph_sso.exceptions import ExpiredTokenError, GraphAPIError
from graph_sso.utils.logger import logger

router = APIRouter(prefix="/api", tags=["Graph"])

AuthenticatedUser = Annotated[dict[str, Any], Depends(require_auth)]


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.get("/me")
async def get_profile(request: Request, user: AuthenticatedUser) -> JSONResponse:
    user_id = user.get("sub")
    if not user_id:
        return _error("User not authenticated", 401)

    try:
        profile = await get_services(request).graph_client.get_user_profile(user_id)
    except ExpiredTokenError:
        return _error("Token is missing or expired", 401)
    except GraphAPIError as e:
        logger.error(f"Error fetching user profile: {e}")
        return _error("Failed to fetch user profile", 500)
    return JSONResponse(profile)


@router.get("/me/photo")
async def get_photo(request: Request, user: AuthenticatedUser) -> JSONResponse:
    user_id = user.get("sub")
    if not user_id:
        return _error("User not authenticated", 401)

    photo = await get_services(request).graph_client.get_user_photo(user_id)
    if not photo:
        return _error("User photo not found", 404)
    return JSONResponse({"photo": photo})


@router.get("/me/calendar")
async def get_calendar(
    request: Request,
    user: AuthenticatedUser,
    start_date_time: Annotated[str | None, Query(alias="startDateTime")] = None,
    end_date_time: Annotated[str | None, Query(alias="endDateTime")] = None,
    top: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> JSONResponse:
    user_id = user.get("sub")
    if not user_id:
        return _error("User not authenticated", 401)

    events = await get_services(request).graph_client.get_user_calendar_events(
        user_id,
        start_date_time=start_date_time,
        end_date_time=end_date_time,
        top=top,
    )
    return JSONResponse({"events": events})
