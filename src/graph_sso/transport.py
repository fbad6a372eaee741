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
Bounded HTTP helpers shared by every outbound call to the identity provider and Graph API.
"""

import json
from dataclasses import dataclass
from typing import Any

import httpx

from graph_sso.exceptions import OversizedResponseError, ProviderResponseError

MAX_RESPONSE_BYTES = 1_000_000
# Profile photos are binary and larger than any JSON document we read
MAX_PHOTO_BYTES = 5_000_000


@dataclass(frozen=True)
class BoundedResponse:
    """
    A fully-read response whose body was capped at a maximum size.
    """

    status_code: int
    headers: httpx.Headers
    content: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decodes the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.content)


async def fetch_bounded(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    max_bytes: int = MAX_RESPONSE_BYTES,
    **kwargs: Any,
) -> BoundedResponse:
    """
    Performs a request and reads the body incrementally, refusing bodies larger than `max_bytes`.

    Args:
        client: The async HTTP client to use.
        url: The target URL.
        method: The HTTP method.
        max_bytes: Maximum accepted body size.
        **kwargs: Passed through to `httpx.AsyncClient.stream` (headers, data, params...).

    Returns:
        BoundedResponse: Status, headers and body. Non-success statuses are returned, not raised.

    Raises:
        OversizedResponseError: If the declared or actual body size exceeds `max_bytes`.
        httpx.HTTPError: On transport failures.
    """
    async with client.stream(method, url, **kwargs) as response:
        content_length = response.headers.get("Content-Length")
        if content_length:
            try:
                if int(content_length) > max_bytes:
                    raise OversizedResponseError(f"Response from {url} too large")
            except ValueError:
                pass

        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > max_bytes:
                raise OversizedResponseError(f"Response from {url} too large")

        return BoundedResponse(status_code=response.status_code, headers=response.headers, content=bytes(content))


async def safe_json_fetch(client: httpx.AsyncClient, url: str, method: str = "GET", **kwargs: Any) -> Any:
    """
    Fetches a JSON document with size protection.

    Raises:
        ProviderResponseError: If the response status is not 2xx.
        OversizedResponseError: If the body is too large.
        ValueError: If the body is not valid JSON.
        httpx.HTTPError: On transport failures.
    """
    response = await fetch_bounded(client, url, method=method, **kwargs)
    if not response.is_success:
        raise ProviderResponseError(
            f"{method} {url} returned HTTP {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )
    return response.json()
