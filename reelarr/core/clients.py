# reelarr/core/clients.py

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from httpx import AsyncBaseTransport, AsyncClient, Limits, Timeout
from aiolimiter import AsyncLimiter

from reelarr.core.config import get_app_config
from reelarr.core.models.settings import RadarrConfig

cfg = get_app_config()

TMDB_LIMITS = Limits(max_connections=20, max_keepalive_connections=10)

# Rate limiter parameterized by process config
tmdb_limiter = AsyncLimiter(max_rate=cfg.tmdb_rate_limit, time_period=10)


def create_tmdb_client(
    token: str,
    transport: Optional[AsyncBaseTransport] = None,
) -> AsyncClient:
    return AsyncClient(
        base_url=cfg.tmdb_base_url,
        headers={"accept": "application/json", "Authorization": f"Bearer {token}"},
        limits=TMDB_LIMITS,
        timeout=Timeout(cfg.http_timeout),
        transport=transport,
    )


def create_radarr_client(
    instance: RadarrConfig,
    transport: Optional[AsyncBaseTransport] = None,
) -> AsyncClient:
    return AsyncClient(
        base_url=f"{instance.base_url.rstrip('/')}/api/v3",
        params={"apikey": instance.api_key},
        timeout=Timeout(cfg.http_timeout),
        transport=transport,
    )


def create_feed_client(transport: Optional[AsyncBaseTransport] = None) -> AsyncClient:
    return AsyncClient(
        timeout=Timeout(cfg.http_timeout),
        follow_redirects=True,
        transport=transport,
    )


@asynccontextmanager
async def use_client(
    client: Optional[AsyncClient],
    factory: Callable[[], AsyncClient],
) -> AsyncIterator[AsyncClient]:
    """Yield ``client`` as-is, or a fresh one from ``factory`` closed on exit."""
    if client is not None:
        yield client
        return
    async with factory() as owned:
        yield owned
