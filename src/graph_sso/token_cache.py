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
Process-wide cache of the most recent token record per user.
"""

import time
from collections.abc import Callable
from typing import Protocol

from graph_sso.models import TokenRecord


class TokenStoreProtocol(Protocol):
    """Keyed token storage. Any backing medium must keep these semantics."""

    def store(self, user_id: str, record: TokenRecord) -> None: ...

    def get(self, user_id: str) -> TokenRecord | None: ...

    def clear(self, user_id: str) -> None: ...

    def is_expired(self, record: TokenRecord) -> bool: ...


class TokenCache:
    """
    In-memory implementation of TokenStoreProtocol.
    Not durable and not shared between processes. Entries live until overwritten or cleared.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: dict[str, TokenRecord] = {}
        self._clock = clock

    def store(self, user_id: str, record: TokenRecord) -> None:
        """Stores `record` for `user_id`, replacing any previous record."""
        self._records[user_id] = record

    def get(self, user_id: str) -> TokenRecord | None:
        return self._records.get(user_id)

    def clear(self, user_id: str) -> None:
        self._records.pop(user_id, None)

    def is_expired(self, record: TokenRecord) -> bool:
        """True once the current time has reached the record's expiry instant."""
        return self._clock() >= record.expires_at

    def __len__(self) -> int:
        return len(self._records)
