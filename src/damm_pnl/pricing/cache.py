"""On-disk cache for the last known reference price."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class CachedPrice:
    """A price and when it was fetched (epoch milliseconds)."""

    price: float
    timestamp: int

    def age_seconds(self, now_ms: int | None = None) -> float:
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return (now_ms - self.timestamp) / 1000


class PriceCache:
    """JSON file holding `{"price": float, "timestamp": epoch_ms}`.

    Read and write failures are logged and swallowed: the cache is an optimisation, never a
    reason for a command to fail.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def read(self) -> CachedPrice | None:
        if not self._path.exists():
            return None
        try:
            with self._path.open(encoding="utf-8") as f:
                entry = json.load(f)
            cached = CachedPrice(price=float(entry["price"]), timestamp=int(entry["timestamp"]))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Price cache read failed", path=str(self._path), error=str(e))
            return None
        if cached.price <= 0:
            return None
        return cached

    def write(self, cached: CachedPrice) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as f:
                json.dump({"price": cached.price, "timestamp": cached.timestamp}, f)
        except OSError as e:
            logger.warning("Price cache write failed", path=str(self._path), error=str(e))
