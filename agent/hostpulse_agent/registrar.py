"""Registrar - announces this agent's metrics port to the HostPulse collector."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from hostpulse_agent import __version__
from hostpulse_agent.config import AgentConfig
from hostpulse_agent.schemas import RegistrationRequest, RegistrationResponse

logger = logging.getLogger(__name__)

MAX_BACKOFF = 60


class RegistrationRejected(Exception):
    """The collector refused the registration; retrying will not help."""


class AgentRegistrar:
    def __init__(
        self,
        config: AgentConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None
        self.registered = False

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.collector.url,
                headers={"User-Agent": f"hostpulse-agent/{__version__}"},
                timeout=self.config.collector.timeout,
                transport=self._transport,
            )
        return self._client

    def _payload(self) -> dict:
        return RegistrationRequest(port=str(self.config.server.port)).model_dump()

    async def register(self):
        """Register (or refresh) this agent with the collector."""
        client = await self._get_client()
        resp = await client.post("/api/v1/agent/register", json=self._payload())
        if 400 <= resp.status_code < 500:
            raise RegistrationRejected(f"Registration rejected ({resp.status_code}): {resp.text}")
        resp.raise_for_status()
        outcome = RegistrationResponse.model_validate(resp.json())
        if outcome.status != "ok":
            raise RegistrationRejected(f"Registration rejected: status={outcome.status}")
        self.registered = True
        logger.debug(f"Registered port {self.config.server.port} with {self.config.collector.url}")

    async def register_with_retry(self):
        """Initial registration with exponential backoff."""
        attempts = self.config.collector.retry_attempts
        for attempt in range(attempts):
            try:
                await self.register()
                logger.info(f"Registered with collector {self.config.collector.url} "
                            f"(port={self.config.server.port})")
                return
            except RegistrationRejected:
                raise
            except (httpx.HTTPError, ValueError) as e:
                if attempt + 1 >= attempts:
                    break
                wait = min(2 ** attempt, MAX_BACKOFF)
                logger.warning(f"Registration failed (attempt {attempt + 1}): {e}. Retry in {wait}s")
                await self._sleep(wait)
        raise RuntimeError(f"Failed to register after {attempts} attempts")

    async def refresh_loop(self):
        """Re-register periodically so the collector's TTL never lapses."""
        interval = self.config.collector.register_interval
        while True:
            await self._sleep(interval)
            try:
                await self.register()
            except Exception as e:
                logger.warning(f"Registration refresh failed: {e}")

    async def deregister(self):
        """Best-effort deregistration on shutdown."""
        if not self.registered:
            return
        try:
            client = await self._get_client()
            resp = await client.post("/api/v1/agent/deregister", json=self._payload())
            resp.raise_for_status()
            self.registered = False
            logger.info(f"Deregistered from collector: {resp.json().get('status')}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Deregistration failed: {e}")

    async def close(self):
        if self._client:
            await self._client.aclose()
