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
OIDC Provider component: one-shot discovery of the provider metadata, plus a JWKS cache.
"""

import time
from typing import Any

import anyio
import httpx

from graph_sso.exceptions import DiscoveryError, GraphSSOError, NotInitializedError, OversizedResponseError
from graph_sso.models_internal import ProviderMetadata
from graph_sso.transport import safe_json_fetch
from graph_sso.utils.logger import logger


class OIDCProvider:
    """
    Fetches the Identity Provider's metadata once and caches its signing keys.

    The metadata is never refreshed after a successful `discover()`; the JWKS is cached with a TTL.

    Attributes:
        discovery_url (str): The OIDC discovery URL.
        cache_ttl (int): The JWKS cache time-to-live in seconds.
    """

    def __init__(
        self,
        discovery_url: str,
        client: httpx.AsyncClient,
        cache_ttl: int = 3600,
        refresh_cooldown: float = 30.0,
    ) -> None:
        """
        Initialize the OIDCProvider.

        Args:
            discovery_url: The OIDC discovery URL.
            client: The async HTTP client to use for requests.
            cache_ttl: Time-to-live for the JWKS cache in seconds. Defaults to 3600 (1 hour).
            refresh_cooldown: Minimum time in seconds between forced JWKS refreshes. Defaults to 30.0.
        """
        self.discovery_url = discovery_url
        self.client = client
        self.cache_ttl = cache_ttl
        self.refresh_cooldown = refresh_cooldown
        self._metadata: ProviderMetadata | None = None
        self._jwks_cache: dict[str, Any] | None = None
        self._last_jwks_update: float = 0.0
        self._lock: anyio.Lock | None = None

    @property
    def is_initialized(self) -> bool:
        return self._metadata is not None

    @property
    def metadata(self) -> ProviderMetadata:
        """
        The discovered provider metadata.

        Raises:
            NotInitializedError: If `discover()` has not completed successfully.
        """
        if self._metadata is None:
            raise NotInitializedError("OpenID client not initialized")
        return self._metadata

    async def discover(self) -> ProviderMetadata:
        """
        Fetches and validates the provider metadata document. Not retried.

        Returns:
            ProviderMetadata: The validated metadata, also cached on the instance.

        Raises:
            DiscoveryError: If the fetch fails, returns a non-success status, or the body does not
                match the expected schema.
        """
        try:
            data = await safe_json_fetch(self.client, self.discovery_url)
        except (GraphSSOError, httpx.HTTPError) as e:
            raise DiscoveryError(f"Failed to fetch OIDC configuration from {self.discovery_url}: {e}") from e
        except ValueError as e:
            raise DiscoveryError(f"Invalid JSON in OIDC configuration from {self.discovery_url}: {e}") from e

        if not isinstance(data, dict):
            raise DiscoveryError(f"Invalid OIDC configuration from {self.discovery_url}: expected a JSON object")

        try:
            metadata = ProviderMetadata(**data)
        except ValueError as e:
            raise DiscoveryError(f"Invalid OIDC configuration from {self.discovery_url}: {e}") from e

        self._metadata = metadata
        logger.info(f"Discovered issuer {metadata.issuer}")
        return metadata

    async def _fetch_jwks(self, jwks_uri: str) -> dict[str, Any]:
        try:
            data = await safe_json_fetch(self.client, jwks_uri)
        except OversizedResponseError:
            raise
        except (GraphSSOError, httpx.HTTPError, ValueError) as e:
            raise GraphSSOError(f"Failed to fetch JWKS from {jwks_uri}: {e}") from e
        if not isinstance(data, dict) or "keys" not in data:
            raise GraphSSOError(f"Invalid JWKS from {jwks_uri}")
        return data

    async def _refresh_jwks_critical_section(self, force_refresh: bool) -> dict[str, Any]:
        """
        Critical section for refreshing JWKS.
        Must be called while holding the lock.
        """
        current_time = time.time()
        age = current_time - self._last_jwks_update
        is_cache_valid = self._jwks_cache is not None and age < self.cache_ttl
        is_in_cooldown = self._jwks_cache is not None and age < self.refresh_cooldown

        if not force_refresh and is_cache_valid:
            return self._jwks_cache  # type: ignore[return-value]

        if force_refresh and is_in_cooldown:
            logger.warning("JWKS refresh cooldown active. Returning cached keys despite force_refresh request.")
            return self._jwks_cache  # type: ignore[return-value]

        jwks_uri = self.metadata.jwks_uri
        if not jwks_uri:
            raise GraphSSOError("Provider metadata does not advertise a jwks_uri")

        jwks = await self._fetch_jwks(jwks_uri)
        self._jwks_cache = jwks
        self._last_jwks_update = current_time
        return jwks

    async def get_jwks(self, force_refresh: bool = False) -> dict[str, Any]:
        """
        Returns the JWKS, using the cache if valid.

        Args:
            force_refresh: If True, bypasses the cache (subject to the refresh cooldown).

        Raises:
            NotInitializedError: If discovery has not completed.
            GraphSSOError: If fetching fails.
        """
        if self._lock is None:
            self._lock = anyio.Lock()

        if not force_refresh:
            if self._jwks_cache is not None and (time.time() - self._last_jwks_update) < self.cache_ttl:
                return self._jwks_cache

        async with self._lock:
            return await self._refresh_jwks_critical_section(force_refresh)
