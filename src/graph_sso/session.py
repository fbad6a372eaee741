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
SessionBinder component: every read and write of authentication data in the browser session.
"""

from collections.abc import MutableMapping
from typing import Any

from pydantic import ValidationError

from graph_sso.models import AuthRequestState
from graph_sso.token_cache import TokenStoreProtocol
from graph_sso.utils.logger import logger

Session = MutableMapping[str, Any]

USER_KEY = "user"
IS_AUTHENTICATED_KEY = "is_authenticated"
AUTH_STATE_KEY = "auth_state"
AUTH_NONCE_KEY = "auth_nonce"
RETURN_TO_KEY = "return_to"


class SessionBinder:
    """
    Binds login artifacts and the authenticated identity into a cookie-backed session mapping.

    The access token itself never goes into the session; it lives in the token cache keyed by `sub`.
    """

    def begin_login(self, session: Session, request_state: AuthRequestState) -> None:
        """Persists the state and nonce of a new login attempt."""
        session[AUTH_STATE_KEY] = request_state.state
        session[AUTH_NONCE_KEY] = request_state.nonce

    def pending_request(self, session: Session) -> AuthRequestState | None:
        """Returns the stored state/nonce, or None if no login is in progress."""
        try:
            return AuthRequestState(state=session.get(AUTH_STATE_KEY), nonce=session.get(AUTH_NONCE_KEY))
        except ValidationError:
            return None

    def consume_pending(self, session: Session) -> AuthRequestState | None:
        """
        Removes the stored state/nonce from the session and returns them.

        Called once at the start of a callback, so a login attempt can be completed at most once whatever
        the outcome.
        """
        pending = self.pending_request(session)
        session.pop(AUTH_STATE_KEY, None)
        session.pop(AUTH_NONCE_KEY, None)
        return pending

    def bind(self, session: Session, identity: dict[str, Any]) -> None:
        """
        Marks the session as authenticated for `identity` and discards the single-use login artifacts.

        Raises:
            ValueError: If the identity has no `sub`.
        """
        if not identity.get("sub"):
            raise ValueError("Cannot bind an identity without 'sub' to the session")
        session[USER_KEY] = identity
        session[IS_AUTHENTICATED_KEY] = True
        session.pop(AUTH_STATE_KEY, None)
        session.pop(AUTH_NONCE_KEY, None)

    def is_authenticated(self, session: Session) -> bool:
        return bool(session.get(IS_AUTHENTICATED_KEY)) and isinstance(session.get(USER_KEY), dict)

    def current_user(self, session: Session) -> dict[str, Any] | None:
        user = session.get(USER_KEY)
        return user if isinstance(user, dict) else None

    def user_id(self, session: Session) -> str | None:
        user = self.current_user(session)
        if user is None:
            return None
        sub = user.get("sub")
        return sub if isinstance(sub, str) and sub else None

    def remember_return_to(self, session: Session, path: str) -> None:
        session[RETURN_TO_KEY] = path

    def pop_return_to(self, session: Session) -> str | None:
        """
        Returns and forgets the destination saved by the request gate.
        Only same-site relative paths are honoured.
        """
        path = session.pop(RETURN_TO_KEY, None)
        if isinstance(path, str) and path.startswith("/") and not path.startswith("//"):
            return path
        return None

    def logout(self, session: Session, cache: TokenStoreProtocol) -> None:
        """
        Clears the user's cached token and destroys the session.

        A failure while destroying the session is logged and otherwise ignored: the authentication
        keys are removed before destruction is attempted, so the caller is logged out either way.
        """
        user_id = self.user_id(session)
        if user_id:
            cache.clear(user_id)

        for key in (IS_AUTHENTICATED_KEY, USER_KEY, AUTH_STATE_KEY, AUTH_NONCE_KEY):
            session.pop(key, None)

        try:
            session.clear()
        except Exception:
            logger.exception("Error destroying session")
