from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .api import stock
from .config import get_settings
from .providers.alpha_vantage import AlphaVantageFetcher
from .providers.credentials import CredentialPool


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

pool = CredentialPool(settings.get_api_keys())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    if not pool.size:
        logger.warning(
            "No Alpha Vantage API keys configured (ALPHAVANTAGE_API_KEYS). "
            "Every stock request will fail until keys are provided."
        )
    else:
        logger.info(f"Loaded {pool.size} Alpha Vantage API key(s).")

    stock.set_provider(AlphaVantageFetcher.from_settings(settings, pool))

    yield

    stock.set_provider(None)


app = FastAPI(
    title="StockSight Core API",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(stock.router)


@app.get("/health")
async def health() -> dict[str, Any]:
    return {
        "ok": True,
        "ts": int(time.time()),
        "provider": "alpha_vantage",
        "api_keys": pool.size,
        "active_key_slot": pool.cursor + 1 if pool.size else None,
    }
