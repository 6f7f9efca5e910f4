"""Base types and protocols for market data providers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol

from ..utils.timeframes import TimeFrame


@dataclass(frozen=True)
class Bar:
    """Unified OHLCV bar representation."""
    ts: datetime  # timezone-aware, start of the bar
    open: float
    high: float
    low: float
    close: float
    volume: int


class PayloadStatus(Enum):
    """Outcome of inspecting a transport-successful provider response."""
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    SYMBOL_NOT_FOUND = "symbol_not_found"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class PayloadCheck:
    status: PayloadStatus
    message: str | None = None


# Inspects a decoded response body before it is handed to the normalizer.
PayloadClassifier = Callable[[dict[str, Any]], PayloadCheck]


class QuoteProvider(Protocol):
    """Protocol for request/response time-series providers."""

    async def fetch(self, symbol: str, time_frame: TimeFrame | str) -> dict[str, Any]:
        """
        Return the raw provider payload for symbol/time_frame.

        Should raise a StockDataError subclass on any failure.
        """
        ...
