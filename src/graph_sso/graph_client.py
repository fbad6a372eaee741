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
GraphClient component: calls to the Graph API on behalf of a signed-in user.
"""

import base64
from typing import Any

import httpx

from graph_sso.exceptions import ExpiredTokenError, GraphAPIError, GraphSSOError
from graph_sso.models import TokenRecord
from graph_sso.token_cache import TokenStoreProtocol
from graph_sso.transport import MAX_PHOTO_BYTES, fetch_bounded, safe_json_fetch
from graph_sso.utils.logger import logger

DEFAULT_EVENT_COUNT = 10


def _odata_string(value: str) -> str:
    """Quotes `value` as an OData string literal; embedded single quotes are doubled."""
    return "'" + value.replace("'", "''") + "'"


class GraphClient:
    """
    Pass-through client for the `/me` family of Graph endpoints.

    Each call looks up the user's bearer token in the token cache; it never refreshes tokens.

    Attributes:
        base_url (str): The Graph API base URL (e.g. https://graph.microsoft.com/v1.0).
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient, cache: TokenStoreProtocol) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.cache = cache

    def _token_for(self, user_id: str) -> TokenRecord:
        record = self.cache.get(user_id)
        if record is None or self.cache.is_expired(record):
            raise ExpiredTokenError("Token is missing or expired")
        return record

    async def get_user_profile(self, user_id: str) -> dict[str, Any]:
        """
        Fetches `/me`.

        Raises:
            ExpiredTokenError: If the user has no valid cached token.
            GraphAPIError: If the Graph API call fails.
        """
        record = self._token_for(user_id)
        url = f"{self.base_url}/me"
        try:
            profile = await safe_json_fetch(self.client, url, headers=record.authorization_header())
        except GraphSSOError as e:
            logger.error(f"Error fetching user profile from Graph API: {e}")
            status_code = getattr(e, "status_code", None)
            raise GraphAPIError(f"Failed to fetch user profile: {e}", status_code=status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching user profile from Graph API: {e}")
            raise GraphAPIError(f"Failed to fetch user profile: {e}") from e

        if not isinstance(profile, dict):
            raise GraphAPIError("Unexpected user profile payload")
        return profile

    async def get_user_photo(self, user_id: str) -> str | None:
        """
        Fetches the user's profile photo as a `data:` URI, or None if it is unavailable for any reason.
        """
        try:
            record = self._token_for(user_id)
            response = await fetch_bounded(
                self.client,
                f"{self.base_url}/me/photo/$value",
                max_bytes=MAX_PHOTO_BYTES,
                headers=record.authorization_header(),
            )
        except (GraphSSOError, httpx.HTTPError) as e:
            logger.warning(f"Error fetching user photo from Graph API: {e}")
            return None

        if not response.is_success or not response.content:
            logger.info(f"User photo unavailable (HTTP {response.status_code})")
            return None

        content_type = response.headers.get("Content-Type", "image/jpeg").split(";")[0].strip() or "image/jpeg"
        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:{content_type};base64,{encoded}"

    async def get_user_calendar_events(
        self,
        user_id: str,
        start_date_time: str | None = None,
        end_date_time: str | None = None,
        top: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetches calendar events, optionally restricted to a time window.

        Returns an empty list if the events cannot be fetched for any reason.
        """
        params = {"$top": str(top if top is not None else DEFAULT_EVENT_COUNT)}
        if start_date_time and end_date_time:
            params["$filter"] = (
                f"start/dateTime ge {_odata_string(start_date_time)} and end/dateTime le {_odata_string(end_date_time)}"
            )

        try:
            record = self._token_for(user_id)
            data = await safe_json_fetch(
                self.client,
                f"{self.base_url}/me/calendar/events",
                params=params,
                headers=record.authorization_header(),
            )
        except (GraphSSOError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error fetching user calendar events from Graph API: {e}")
            return []

        events = data.get("value") if isinstance(data, dict) else None
        return events if isinstance(events, list) else []
