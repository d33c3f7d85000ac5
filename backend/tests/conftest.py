"""
HostPulse Collector 测试基础配置

提供可控时钟、注册表、基于 httpx.MockTransport 的模拟 Agent 集群、采集器，
以及带依赖覆盖的 httpx ASGI 测试客户端。所有测试不依赖真实网络。
"""
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.core.deps import get_collector, get_registry
from app.main import app
from app.services.agent_client import AgentMetricsClient
from app.services.collector import Collector
from app.services.registry import RegistrationTable


# ── 可控时钟 ──────────────────────────────────────────────────────────
class FakeClock:
    """手动推进的 UTC 时钟。"""
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_metrics(host: str = "agent-host", **memory) -> dict:
    """构造一个合法的 Agent 指标响应体。"""
    mem = {
        "mem_total": 8_000_000_000,
        "mem_free": 2_000_000_000,
        "mem_available": 5_000_000_000,
        "buffers": 500_000_000,
        "cached": 1_500_000_000,
    }
    mem.update(memory)
    return {"host": host, "cpu_usage": 12.5, "memory": mem, "net_usage": 123456}


# ── Fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def metrics_factory() -> Callable[..., dict]:
    return make_metrics


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> RegistrationTable:
    return RegistrationTable(ttl=300, clock=clock)


@pytest.fixture
def agents() -> dict[str, Callable]:
    """模拟 Agent 集群："host:port" -> handler(request)，handler 可以是协程函数。

    未登记的端点表现为连接被拒绝。
    """
    return {}


@pytest.fixture
def agent_transport(agents) -> httpx.MockTransport:
    async def dispatch(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.host}:{request.url.port}"
        handler = agents.get(key)
        if handler is None:
            raise httpx.ConnectError("Connection refused", request=request)
        response = handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    return httpx.MockTransport(dispatch)


@pytest_asyncio.fixture
async def collector(registry, agent_transport) -> AsyncGenerator[Collector, None]:
    client = AgentMetricsClient(timeout=0.5, transport=agent_transport)
    collector = Collector(registry, client, timeout=0.5, max_concurrency=4)
    yield collector
    await client.close()


@pytest_asyncio.fixture
async def client_factory(registry, collector):
    """创建指定对端地址的测试客户端，依赖覆盖为测试注册表与采集器。"""
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_collector] = lambda: collector
    clients: list[AsyncClient] = []

    def _make(peer: str = "10.0.0.5") -> AsyncClient:
        transport = ASGITransport(app=app, client=(peer, 40000))
        ac = AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(client_factory) -> AsyncClient:
    """对端地址为 10.0.0.5 的测试客户端。"""
    return client_factory("10.0.0.5")
