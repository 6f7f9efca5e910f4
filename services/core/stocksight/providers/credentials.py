"""API key rotation for rate-limited providers."""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import NoCredentials


logger = logging.getLogger(__name__)


class CredentialPool:
    """
    Ordered pool of API keys with a cursor selecting the active one.

    The pool is not thread/task safe. Callers must keep at most one request
    in flight per pool; concurrent callers would race the cursor.
    """

    def __init__(self, keys: Iterable[str]):
        """
        Initialize the pool.

        Args:
            keys: API keys in rotation order. Blank entries are ignored.
        """
        self._keys = [k.strip() for k in keys if k and k.strip()]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def size(self) -> int:
        return len(self._keys)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> str:
        """Return the key at the cursor."""
        if not self._keys:
            raise NoCredentials("No Alpha Vantage API keys configured.")
        return self._keys[self._cursor]

    def advance(self) -> str | None:
        """
        Move to the next key.

        Returns:
            The new active key, or None once the cursor wraps back to the
            first key (every key has been tried since the last wrap).
        """
        if not self._keys:
            raise NoCredentials("No Alpha Vantage API keys configured.")

        self._cursor = (self._cursor + 1) % len(self._keys)
        if self._cursor == 0:
            logger.warning(
                "All Alpha Vantage API keys exhausted or rate limited. "
                "Please wait and try again later."
            )
            return None
        return self._keys[self._cursor]

    def reset(self) -> None:
        self._cursor = 0
