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
HTTP routes of the graph-sso application.
"""

from .api import router as api_router
from .auth import router as auth_router
from .pages import router as pages_router

__all__ = ["api_router", "auth_router", "pages_router"]
