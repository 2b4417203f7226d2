"""Fixed-Window Rate-Limiter pro Client-Kennung auf Basis von `limits`.

MemoryStorage lebt nur im Prozess; mehrere Instanzen teilen sich keine Zähler."""
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from chat_proxy.core.errors import Rejection, rate_limited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Ergebnis einer Zählung; rejection ist gesetzt, wenn das Limit überschritten ist."""

    limit: int
    remaining: int
    reset_after: int
    rejection: Optional[Rejection] = None

    @property
    def allowed(self) -> bool:
        return self.rejection is None

    def headers(self) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class RateLimiter:
    """Zählt Anfragen pro Client in festen Zeitfenstern.

    Läuft das Fenster ab, verfällt der Zähler in der Storage und beginnt wieder
    bei 1. Abgelehnte Anfragen zählen mit."""

    def __init__(
        self,
        name: str,
        window_seconds: int,
        max_requests: int,
        message: str = "Too many requests, please try again later",
        storage: Optional[MemoryStorage] = None,
    ) -> None:
        self.name = name
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.message = message
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)

    def hit(self, client_id: str) -> RateLimitDecision:
        """Zählt eine Anfrage von client_id und entscheidet über Zulassung."""
        admitted = self._strategy.hit(self._item, self.name, client_id)
        stats = self._strategy.get_window_stats(self._item, self.name, client_id)

        reset_after = max(1, min(self.window_seconds, math.ceil(stats.reset_time - time.time())))
        decision = RateLimitDecision(
            limit=self.max_requests,
            remaining=stats.remaining,
            reset_after=reset_after,
        )
        if admitted:
            return decision

        logger.warning("Rate limit '%s' exceeded for client: %s", self.name, client_id)
        return RateLimitDecision(
            limit=decision.limit,
            remaining=0,
            reset_after=reset_after,
            rejection=rate_limited(self.message, retry_after=reset_after, headers=decision.headers()),
        )

    def reset(self) -> None:
        self._storage.reset()
