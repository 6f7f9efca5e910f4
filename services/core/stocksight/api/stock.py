"""
Stock data API routes.

Thin transport over fetch_stock_data. Requests are serialized through a
single lock because the provider's key pool is not safe for concurrent use.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator

from ..providers.base import QuoteProvider
from ..service import fetch_stock_data
from ..utils.timeframes import TIME_FRAME_SPECS, TimeFrame

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["stock"])

# Provider instance (set by main.py)
_provider: QuoteProvider | None = None
_request_lock = asyncio.Lock()


def set_provider(provider: QuoteProvider | None) -> None:
    """Set the provider instance."""
    global _provider
    _provider = provider


def get_provider() -> QuoteProvider:
    """Get the provider instance."""
    if _provider is None:
        raise HTTPException(status_code=500, detail="Provider not initialized")
    return _provider


class StockRequest(BaseModel):
    symbol: str = Field(..., description="Ticker symbol, e.g. IBM")
    time_frame: str = Field(
        "daily",
        description="One of daily (intraday), weekly, monthly, yearly, 5year",
    )

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().upper()
        if not symbol:
            raise ValueError("Please enter a stock symbol.")
        return symbol


@router.post("/stock")
async def get_stock_data(req: StockRequest) -> dict[str, Any]:
    """
    Fetch chart data and key metrics for a symbol.

    Returns {"success": true, "chartData": ..., "keyMetrics": ...} or
    {"success": false, "message": ...}. Failures are reported in the body,
    not as HTTP errors.
    """
    provider = get_provider()

    async with _request_lock:
        result = await fetch_stock_data(provider, req.symbol, req.time_frame)

    if not result.ok:
        return {"success": False, "message": result.error_message}
    return {"success": True, **result.to_dict()}


@router.get("/timeframes")
async def get_time_frames() -> dict[str, Any]:
    """List supported time frames and the upstream query each one maps to."""
    return {
        "time_frames": [
            {
                "value": frame.value,
                "function": spec.function,
                "interval": spec.interval,
                "outputsize": spec.outputsize,
            }
            for frame, spec in TIME_FRAME_SPECS.items()
        ],
        "default": TimeFrame.INTRADAY.value,
    }
