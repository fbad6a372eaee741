# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

import base64

import httpx
import pytest
from pydantic import SecretStr

from conftest import GRAPH, FakeIdP
from graph_sso.exceptions import ExpiredTokenError, GraphAPIError
from graph_sso.graph_client import GraphClient
from graph_sso.models import TokenRecord
from graph_sso.token_cache import TokenCache

USER_ID = "user-sub-1"
ME_URL = f"{GRAPH}/me"
PHOTO_URL = f"{GRAPH}/me/photo/$value"
EVENTS_URL = f"{GRAPH}/me/calendar/events"


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _graph(http_client: httpx.AsyncClient, clock: FakeClock | None = None) -> GraphClient:
    cache = TokenCache(clock=clock or FakeClock(1000.0))
    cache.store(
        USER_ID,
        TokenRecord(access_token=SecretStr("graph-token"), token_type="Bearer", expires_in=3600, issued_at=1000.0),
    )
    return GraphClient(GRAPH + "/", http_client, cache)


@pytest.mark.asyncio
async def test_get_user_profile(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    """Test that /me is called with the cached bearer token and its JSON returned unchanged."""
    profile = {"id": "graph-id", "displayName": "Alice", "mail": "alice@example.com"}
    fake_idp.set_json("GET", ME_URL, profile)

    assert await _graph(http_client).get_user_profile(USER_ID) == profile

    [call] = fake_idp.calls_to(ME_URL)
    assert call.headers["Authorization"] == "Bearer graph-token"


@pytest.mark.asyncio
async def test_get_user_profile_without_token(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    graph = _graph(http_client)
    with pytest.raises(ExpiredTokenError, match="missing or expired"):
        await graph.get_user_profile("unknown-user")
    assert fake_idp.calls_to(ME_URL) == []


@pytest.mark.asyncio
async def test_get_user_profile_with_expired_token(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    """Test that an expired record is refused locally, without calling the Graph API."""
    graph = _graph(http_client, clock=FakeClock(4600.0))
    with pytest.raises(ExpiredTokenError):
        await graph.get_user_profile(USER_ID)
    assert fake_idp.calls_to(ME_URL) == []


@pytest.mark.asyncio
async def test_get_user_profile_graph_failure(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", ME_URL, {"error": {"code": "InvalidAuthenticationToken"}}, status=401)
    with pytest.raises(GraphAPIError) as exc:
        await _graph(http_client).get_user_profile(USER_ID)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_get_user_profile_non_object(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", ME_URL, ["unexpected"])
    with pytest.raises(GraphAPIError):
        await _graph(http_client).get_user_profile(USER_ID)


@pytest.mark.asyncio
async def test_get_user_photo(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    image = b"\x89PNG\r\n\x1a\nfake-image"
    fake_idp.set_bytes("GET", PHOTO_URL, image, content_type="image/png")

    photo = await _graph(http_client).get_user_photo(USER_ID)

    assert photo == "data:image/png;base64," + base64.b64encode(image).decode("ascii")


@pytest.mark.asyncio
async def test_get_user_photo_defaults_to_jpeg(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_bytes("GET", PHOTO_URL, b"jpeg-bytes")
    photo = await _graph(http_client).get_user_photo(USER_ID)
    assert photo is not None
    assert photo.startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_get_user_photo_missing(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", PHOTO_URL, {"error": {"code": "ImageNotFound"}}, status=404)
    assert await _graph(http_client).get_user_photo(USER_ID) is None


@pytest.mark.asyncio
async def test_get_user_photo_without_token(http_client: httpx.AsyncClient) -> None:
    assert await _graph(http_client).get_user_photo("unknown-user") is None


@pytest.mark.asyncio
async def test_get_calendar_events_defaults(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    events = [{"subject": "Standup"}, {"subject": "Review"}]
    fake_idp.set_json("GET", EVENTS_URL, {"value": events})

    assert await _graph(http_client).get_user_calendar_events(USER_ID) == events

    [call] = fake_idp.calls_to(EVENTS_URL)
    assert call.url.params["$top"] == "10"
    assert "$filter" not in call.url.params


@pytest.mark.asyncio
async def test_get_calendar_events_with_window(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", EVENTS_URL, {"value": []})

    await _graph(http_client).get_user_calendar_events(
        USER_ID, start_date_time="2024-01-01T00:00:00", end_date_time="2024-01-31T23:59:59", top=25
    )

    [call] = fake_idp.calls_to(EVENTS_URL)
    assert call.url.params["$top"] == "25"
    assert call.url.params["$filter"] == (
        "start/dateTime ge '2024-01-01T00:00:00' and end/dateTime le '2024-01-31T23:59:59'"
    )


@pytest.mark.asyncio
async def test_get_calendar_events_escapes_quotes(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    """Test that a quote in a bound cannot close the OData string and extend the filter."""
    fake_idp.set_json("GET", EVENTS_URL, {"value": []})

    await _graph(http_client).get_user_calendar_events(
        USER_ID, start_date_time="2024-01-01' or subject eq 'x", end_date_time="2024-01-31"
    )

    [call] = fake_idp.calls_to(EVENTS_URL)
    assert call.url.params["$filter"] == (
        "start/dateTime ge '2024-01-01'' or subject eq ''x' and end/dateTime le '2024-01-31'"
    )


@pytest.mark.asyncio
async def test_get_calendar_events_ignores_half_window(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", EVENTS_URL, {"value": []})
    await _graph(http_client).get_user_calendar_events(USER_ID, start_date_time="2024-01-01T00:00:00")
    [call] = fake_idp.calls_to(EVENTS_URL)
    assert "$filter" not in call.url.params


@pytest.mark.asyncio
async def test_get_calendar_events_failure_returns_empty(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    fake_idp.set_json("GET", EVENTS_URL, {"error": "boom"}, status=500)
    assert await _graph(http_client).get_user_calendar_events(USER_ID) == []


@pytest.mark.asyncio
async def test_get_calendar_events_without_token(fake_idp: FakeIdP, http_client: httpx.AsyncClient) -> None:
    assert await _graph(http_client).get_user_calendar_events("unknown-user") == []
    assert fake_idp.calls_to(EVENTS_URL) == []
