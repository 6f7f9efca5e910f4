"""Failure kinds raised by the fetch/normalize pipeline."""

from __future__ import annotations


class StockDataError(Exception):
    """Base class for every recoverable pipeline failure."""
    pass


# Fetcher

class InvalidTimeFrame(StockDataError):
    """Raised when a requested time frame is not one of the known values."""

    def __init__(self, time_frame: object):
        self.time_frame = time_frame
        super().__init__(f"Invalid time frame provided: {time_frame!r}")


class NoCredentials(StockDataError):
    """Raised when the credential pool is empty (configuration error)."""
    pass


class SymbolNotFound(StockDataError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f'Stock symbol "{symbol}" not found or no data available.')


class ProviderError(StockDataError):
    """Raised for any other error message embedded in a provider response."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"API Error: {detail}")


class RateLimitExceeded(StockDataError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"API rate limit exceeded for all available keys after {attempts} attempt(s)."
        )


class NetworkError(StockDataError):
    """Transport-level failure: non-2xx status or no response at all."""

    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        if status is None:
            super().__init__(f"Network error: {message}")
        else:
            super().__init__(f"Network error: {status} - {message}")


# Normalizer

class MissingSeries(StockDataError):
    """Raised when the payload has no time series for the requested granularity."""

    def __init__(self, series_key: str, detail: str | None = None):
        self.series_key = series_key
        super().__init__(detail or f"No time series data found in the API response ({series_key}).")


class MalformedSeries(MissingSeries):
    """Raised when a time series entry cannot be parsed into a bar."""

    def __init__(self, series_key: str, timestamp: str, reason: str):
        self.timestamp = timestamp
        super().__init__(series_key, f"Malformed entry {timestamp!r} in {series_key}: {reason}")


class EmptyIntradaySeries(StockDataError):
    def __init__(self):
        super().__init__("No intraday data available for the current day.")


class EmptyWindow(StockDataError):
    def __init__(self, time_frame: str):
        self.time_frame = time_frame
        super().__init__(f"No data available for the selected time frame ({time_frame}) after filtering.")
