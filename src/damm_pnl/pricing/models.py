"""Pydantic models for the CoinGecko simple-price payload."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, TypeAdapter


class CoinPrice(BaseModel):
    """Quote for one coin, e.g. `{"usd": 185.2}`."""

    model_config = ConfigDict(extra="ignore")

    usd: float | None = None


SimplePriceResponse = TypeAdapter(dict[str, CoinPrice])
