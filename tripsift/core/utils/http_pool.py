"""Shared httpx clients, one per remote service."""

import asyncio
from typing import Dict, Optional

import httpx

from tripsift import config
from tripsift.core.logging import get_logger

_log = get_logger("core.http_pool")

POOL_LIMITS = httpx.Limits(max_connections=20, max_keepalive_connections=5)


def service_timeout(service: str) -> float:
    if service in ("gemini", "openrouter", "groq"):
        return config.TIMEOUT_LLM_REQUEST
    if service in ("nominatim", "photon"):
        return config.TIMEOUT_GEOCODE
    return config.TIMEOUT_HTTP_DEFAULT


class ClientPool:
    """Lazily created clients keyed by service name.

    Clients belong to the event loop that created them; a pool used from a
    new loop (a second ``asyncio.run``) drops the stale ones first.
    """

    def __init__(self, limits: httpx.Limits = POOL_LIMITS):
        self.limits = limits
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def __len__(self) -> int:
        return len(self._clients)

    def _check_loop(self) -> None:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            if self._clients:
                _log.debug("Discarding clients from a previous event loop", count=len(self._clients))
            self._clients.clear()
            self._loop = loop

    def get(
        self,
        service: str = "default",
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.AsyncClient:
        self._check_loop()
        client = self._clients.get(service)
        if client is not None and not client.is_closed:
            return client

        read_timeout = timeout or service_timeout(service)
        client = httpx.AsyncClient(
            base_url=base_url or "",
            headers=headers,
            limits=self.limits,
            timeout=httpx.Timeout(read_timeout, connect=config.TIMEOUT_HTTP_CONNECT),
            follow_redirects=True,
        )
        self._clients[service] = client
        _log.debug("Client created", service=service, timeout=read_timeout)
        return client

    async def close(self) -> int:
        clients = list(self._clients.items())
        self._clients.clear()
        for service, client in clients:
            try:
                await client.aclose()
            except (httpx.HTTPError, RuntimeError) as e:
                _log.warning("Client close failed", service=service, error=str(e))
        if clients:
            _log.debug("Clients closed", count=len(clients))
        return len(clients)


_pool = ClientPool()


async def get_client(
    service: str = "default",
    base_url: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> httpx.AsyncClient:
    """Client from the process-wide pool."""
    return _pool.get(service, base_url=base_url, headers=headers, timeout=timeout)


async def close_all() -> int:
    return await _pool.close()
