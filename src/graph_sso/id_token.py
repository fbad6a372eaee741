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
IdTokenValidator component for checking the id_token returned alongside the access token.
"""

import hmac
from typing import Any, cast

from authlib.jose import JsonWebToken
from authlib.jose.errors import (
    BadSignatureError,
    ExpiredTokenError,
    InvalidClaimError,
    JoseError,
    MissingClaimError,
)
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from graph_sso.exceptions import GraphSSOError, IdTokenValidationError
from graph_sso.oidc_provider import OIDCProvider
from graph_sso.utils.logger import logger

tracer = trace.get_tracer(__name__)

TENANT_PLACEHOLDER = "{tenantid}"


class IdTokenValidator:
    """
    Validates an id_token against the provider JWKS, the expected audience and issuer, and the
    login attempt's nonce.

    Attributes:
        oidc_provider (OIDCProvider): Source of the signing keys and issuer.
        client_id (str): The expected `aud` claim.
        leeway (int): Acceptable clock skew in seconds.
    """

    def __init__(
        self,
        oidc_provider: OIDCProvider,
        client_id: str,
        allowed_algorithms: list[str] | None = None,
        leeway: int = 60,
    ) -> None:
        self.oidc_provider = oidc_provider
        self.client_id = client_id
        self.allowed_algorithms = allowed_algorithms or ["RS256"]
        self.leeway = leeway
        self.jwt = JsonWebToken(self.allowed_algorithms)

    def _expected_issuer(self, claims: dict[str, Any]) -> str:
        # Multi-tenant metadata advertises the issuer as a template
        issuer = self.oidc_provider.metadata.issuer
        if TENANT_PLACEHOLDER in issuer:
            issuer = issuer.replace(TENANT_PLACEHOLDER, str(claims.get("tid", "")))
        return issuer

    def _decode(self, token: str, jwks: dict[str, Any]) -> Any:
        options = {
            "exp": {"essential": True},
            "aud": {"essential": True, "value": self.client_id},
            "iss": {"essential": True},
            "nonce": {"essential": True},
        }
        jwt_any = cast("Any", self.jwt)
        claims = jwt_any.decode(token, jwks, claims_options=options)
        claims.validate(leeway=self.leeway)
        return claims

    async def validate(self, id_token: str, nonce: str) -> dict[str, Any]:
        """
        Validates the id_token signature and claims.

        Args:
            id_token: The raw id_token from the token response.
            nonce: The nonce stored in the session for this login attempt.

        Returns:
            dict[str, Any]: The validated claims.

        Raises:
            IdTokenValidationError: If the token is expired, badly signed, has the wrong audience,
                issuer or nonce, or the signing keys cannot be loaded.
        """
        with tracer.start_as_current_span("validate_id_token") as span:
            token = id_token.strip()
            try:
                jwks = await self.oidc_provider.get_jwks()
                try:
                    claims = self._decode(token, jwks)
                except (ValueError, BadSignatureError):
                    # Possible key rollover
                    logger.info("id_token validation failed with cached keys, refreshing JWKS and retrying...")
                    span.add_event("refreshing_jwks")
                    jwks = await self.oidc_provider.get_jwks(force_refresh=True)
                    claims = self._decode(token, jwks)

                payload = dict(claims)

                if payload.get("iss") != self._expected_issuer(payload):
                    raise IdTokenValidationError(f"Unexpected id_token issuer: {payload.get('iss')}")

                if not hmac.compare_digest(str(payload.get("nonce", "")), nonce):
                    raise IdTokenValidationError("id_token nonce does not match the login request")

                span.set_status(Status(StatusCode.OK))
                return payload

            except ExpiredTokenError as e:
                logger.warning("id_token validation failed: token expired")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"id_token has expired: {e}") from e
            except (InvalidClaimError, MissingClaimError) as e:
                logger.warning(f"id_token validation failed: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"Invalid id_token claim: {e}") from e
            except BadSignatureError as e:
                logger.error("id_token validation failed: bad signature")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"Invalid id_token signature: {e}") from e
            except JoseError as e:
                logger.error(f"id_token validation failed: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"id_token validation failed: {e}") from e
            except IdTokenValidationError as e:
                logger.warning(str(e))
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise
            except GraphSSOError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"Unable to validate id_token: {e}") from e
            except ValueError as e:
                # Authlib raises ValueError when no key matches the token's kid
                logger.error(f"id_token validation failed: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise IdTokenValidationError(f"Invalid id_token signature or key not found: {e}") from e
