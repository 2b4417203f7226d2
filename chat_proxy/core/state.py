"""Prozessweiter Zustand des Proxys. Lebt genau so lange wie die App
(Lifespan) und wird bei jedem Neustart frisch aufgebaut."""
from dataclasses import dataclass
from typing import Optional

import httpx

from chat_proxy.core.config import Settings
from chat_proxy.core.cors import CorsGuard
from chat_proxy.core.rate_limiter import RateLimiter
from chat_proxy.core.upstream import VapiClient


@dataclass
class ProxyState:
    settings: Settings
    chat_limiter: RateLimiter
    config_limiter: RateLimiter
    cors_guard: CorsGuard
    upstream: VapiClient

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> "ProxyState":
        return cls(
            settings=settings,
            chat_limiter=RateLimiter(
                "chat",
                window_seconds=settings.chat_rate_window,
                max_requests=settings.chat_rate_max,
            ),
            config_limiter=RateLimiter(
                "config",
                window_seconds=settings.config_rate_window,
                max_requests=settings.config_rate_max,
                message="Too many config requests",
            ),
            cors_guard=CorsGuard(settings.origin_list, permissive=settings.cors_permissive),
            upstream=VapiClient(settings, http_client=http_client),
        )

    async def aclose(self) -> None:
        await self.upstream.aclose()
