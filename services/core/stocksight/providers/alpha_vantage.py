"""Alpha Vantage time series fetcher with API key rotation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from ..config import Settings
from ..errors import (
    NetworkError,
    ProviderError,
    RateLimitExceeded,
    SymbolNotFound,
)
from ..utils.timeframes import TimeFrame, TimeFrameSpec, get_spec
from .base import PayloadCheck, PayloadClassifier, PayloadStatus
from .credentials import CredentialPool


logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://www.alphavantage.co/query"
MAX_RETRIES_PER_KEY = 1

# Alpha Vantage reports throttling with HTTP 200 and one of these notices.
THROTTLE_FIELDS = ("Note", "Information")
THROTTLE_MARKERS = (
    "Our standard API call frequency is",
    "Our standard API rate limit is",
)


def classify_payload(payload: dict[str, Any]) -> PayloadCheck:
    """
    Inspect an Alpha Vantage response body for embedded errors.

    Alpha Vantage returns 200 for bad symbols and for throttling, so this
    runs on every transport-successful response before normalization.
    """
    error = payload.get("Error Message")
    if error:
        text = str(error)
        if "Invalid API call" in text and "time series is not available" in text:
            return PayloadCheck(PayloadStatus.SYMBOL_NOT_FOUND, text)
        return PayloadCheck(PayloadStatus.PROVIDER_ERROR, text)

    for field in THROTTLE_FIELDS:
        note = payload.get(field)
        if note and any(marker in str(note) for marker in THROTTLE_MARKERS):
            return PayloadCheck(PayloadStatus.RATE_LIMITED, str(note))

    return PayloadCheck(PayloadStatus.OK)


class AlphaVantageFetcher:
    """Fetches raw time series payloads, rotating API keys when throttled."""

    def __init__(
        self,
        pool: CredentialPool,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        session: aiohttp.ClientSession | None = None,
        classifier: PayloadClassifier = classify_payload,
    ):
        """
        Initialize the fetcher.

        Args:
            pool: Shared key pool; its cursor persists across requests
            base_url: Query endpoint
            timeout_seconds: Total timeout per HTTP call
            session: Optional externally owned session (one is created per call otherwise)
            classifier: Pre-parse payload inspector
        """
        self.pool = pool
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self.classifier = classifier

    @classmethod
    def from_settings(cls, settings: Settings, pool: CredentialPool | None = None) -> AlphaVantageFetcher:
        return cls(
            pool or CredentialPool(settings.get_api_keys()),
            base_url=settings.alphavantage_base_url,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @staticmethod
    def build_params(symbol: str, spec: TimeFrameSpec, api_key: str) -> dict[str, str]:
        params = {
            "function": spec.function,
            "symbol": symbol,
        }
        if spec.interval:
            params["interval"] = spec.interval
        params["outputsize"] = spec.outputsize
        params["apikey"] = api_key
        return params

    async def fetch(self, symbol: str, time_frame: TimeFrame | str) -> dict[str, Any]:
        """
        Fetch the raw payload for a symbol and time frame.

        Each throttled response moves to the next key; at most one call per
        key is made before giving up with RateLimitExceeded.

        Raises:
            InvalidTimeFrame, NoCredentials, SymbolNotFound, ProviderError,
            RateLimitExceeded, NetworkError
        """
        spec = get_spec(time_frame)
        api_key = self.pool.current()
        retries = 0

        while True:
            payload = await self._request(self.build_params(symbol, spec, api_key))
            check = self.classifier(payload)

            if check.status is PayloadStatus.SYMBOL_NOT_FOUND:
                raise SymbolNotFound(symbol)

            if check.status is PayloadStatus.PROVIDER_ERROR:
                raise ProviderError(check.message or "unknown provider error")

            if check.status is PayloadStatus.RATE_LIMITED:
                logger.warning(
                    f"Alpha Vantage API rate limit hit with key {self.pool.cursor + 1}. "
                    "Retrying with next key..."
                )
                if retries >= self.pool.size * MAX_RETRIES_PER_KEY:
                    raise RateLimitExceeded(retries + 1)
                next_key = self.pool.advance()
                if next_key is None:
                    raise RateLimitExceeded(retries + 1)
                api_key = next_key
                retries += 1
                continue

            return payload

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        if self._session is not None:
            return await self._get_json(self._session, params)
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._get_json(session, params)

    async def _get_json(self, session: aiohttp.ClientSession, params: dict[str, str]) -> dict[str, Any]:
        try:
            async with session.get(self.base_url, params=params) as response:
                if not 200 <= response.status < 300:
                    text = await response.text()
                    logger.error(f"HTTP error status: {response.status}, data: {text}")
                    raise NetworkError(response.status, response.reason or "")

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ProviderError(f"Response is not valid JSON: {e}") from e

        except aiohttp.ClientError as e:
            logger.error(f"Network error calling Alpha Vantage ({params.get('function')}): {e}")
            raise NetworkError(None, str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            logger.error(f"Alpha Vantage request timed out ({params.get('function')})")
            raise NetworkError(None, "request timed out") from e

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected response type: {type(data).__name__}")
        return data
