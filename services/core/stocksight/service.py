"""Fetch + normalize orchestration with user-facing error messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from .errors import (
    EmptyIntradaySeries,
    EmptyWindow,
    InvalidTimeFrame,
    MissingSeries,
    NetworkError,
    RateLimitExceeded,
    StockDataError,
    SymbolNotFound,
)
from .providers.base import QuoteProvider
from .series.normalizer import ChartSeries, Metrics, normalize
from .utils.timeframes import TimeFrame


logger = logging.getLogger(__name__)


GENERIC_FAILURE = "Failed to fetch stock data."


@dataclass
class StockDataResult:
    """Outcome of one request: chart data and metrics, or an error message."""
    chart_data: ChartSeries | None = None
    key_metrics: Metrics | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_message is None

    def to_dict(self) -> dict[str, Any]:
        if self.error_message is not None:
            return {"errorMessage": self.error_message}
        return {
            "chartData": self.chart_data.to_dict(),
            "keyMetrics": self.key_metrics.to_dict(),
        }


def user_message(error: Exception, symbol: str) -> str:
    """Map a pipeline failure to the single sentence shown to the user."""
    if isinstance(error, RateLimitExceeded):
        return (
            "API rate limit exceeded. Please wait a minute and try again, "
            "or consider using multiple API keys."
        )
    if isinstance(error, SymbolNotFound):
        return (
            f'Stock symbol "{symbol}" not found or no data available for this time range. '
            "API hit rate limit may have been exceeded for this device. Please try again tomorrow."
        )
    if isinstance(error, (MissingSeries, EmptyIntradaySeries)):
        return (
            "No stock data found for the selected time range. "
            "This might be due to an invalid symbol or no trading activity."
        )
    if isinstance(error, EmptyWindow):
        return f"No historical data available for the selected time range for {symbol}."
    if isinstance(error, NetworkError):
        return (
            "A network error occurred while fetching data. "
            f"Please check your internet connection. ({error})"
        )
    if isinstance(error, InvalidTimeFrame):
        return "Invalid time frame selection."
    return GENERIC_FAILURE


async def fetch_stock_data(
    provider: QuoteProvider,
    symbol: str,
    time_frame: TimeFrame | str,
    today: date | None = None,
) -> StockDataResult:
    """
    Fetch and normalize data for one symbol/time frame.

    Never raises: every failure becomes a StockDataResult with error_message
    set. Callers must not run two of these concurrently against providers
    sharing one CredentialPool.
    """
    frame_name = time_frame.value if isinstance(time_frame, TimeFrame) else time_frame
    try:
        payload = await provider.fetch(symbol, time_frame)
        chart_data, key_metrics = normalize(payload, time_frame, today=today)
    except StockDataError as e:
        logger.error(f"fetch_stock_data failed for {symbol} ({frame_name}): {e}")
        return StockDataResult(error_message=user_message(e, symbol))
    except Exception as e:
        logger.error(f"Unexpected error fetching {symbol} ({frame_name}): {e}", exc_info=True)
        return StockDataResult(error_message=GENERIC_FAILURE)

    logger.info(f"Fetched {len(chart_data.labels)} points for {symbol} ({frame_name})")
    return StockDataResult(chart_data=chart_data, key_metrics=key_metrics)
