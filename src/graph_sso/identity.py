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
Enrichment of provider claims into the identity stored in the session.
"""

from typing import Any

DEFAULT_DISPLAY_NAME = "User"


def display_name_for(claims: dict[str, Any]) -> str:
    """
    Picks a human-readable name: `name`, then `preferred_username`, then a generic fallback.
    """
    return claims.get("name") or claims.get("preferred_username") or DEFAULT_DISPLAY_NAME


def enrich_user_info(claims: dict[str, Any]) -> dict[str, Any]:
    """
    Adds `displayName`, `userId` and `isAuthenticated` to the userinfo claims.

    The merge is non-destructive: every provider claim is kept with its value, and a
    derived key that the provider already sent is left untouched.

    Args:
        claims: The userinfo claims. Must contain `sub`.

    Returns:
        A new dictionary; `claims` is not modified.
    """
    derived = {
        "displayName": display_name_for(claims),
        "userId": claims["sub"],
        "isAuthenticated": True,
    }
    return {**derived, **claims}
