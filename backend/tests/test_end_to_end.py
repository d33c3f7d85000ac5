"""端到端测试：Agent 注册后，Collector 通过真实的 Agent 指标服务取回指标。"""
import httpx
import pytest_asyncio

from app.schemas.agent import MetricsResponse
from app.services.agent_client import AgentMetricsClient
from app.services.collector import Collector
from app.core.exceptions import RemoteMetricUnavailable
from hostpulse_agent.collector import HostMetrics, MemorySnapshot, MetricUnavailable
from hostpulse_agent.server import create_app


class StubSampler:
    def __init__(self):
        self.fail = False

    def sample(self) -> HostMetrics:
        if self.fail:
            raise MetricUnavailable("psutil unavailable")
        return HostMetrics(
            host="node-5",
            cpu_usage=42.0,
            memory=MemorySnapshot(
                mem_total=16_000_000_000,
                mem_free=4_000_000_000,
                mem_available=9_000_000_000,
                buffers=1_000_000_000,
                cached=3_000_000_000,
            ),
            net_usage=987654321,
        )


@pytest_asyncio.fixture
async def sampler():
    return StubSampler()


@pytest_asyncio.fixture
async def e2e_collector(registry, sampler):
    agent_app = create_app(sampler)
    client = AgentMetricsClient(timeout=2.0, transport=httpx.ASGITransport(app=agent_app))
    yield Collector(registry, client, timeout=2.0)
    await client.close()


class TestEndToEnd:
    async def test_register_list_collect(self, client_factory, registry, e2e_collector):
        resp = await client_factory("10.0.0.5").post("/api/v1/agent/register", json={"port": "9100"})
        assert resp.json() == {"status": "ok"}

        listed = await registry.list_registered()
        assert {(r.address, r.port) for r in listed} == {("10.0.0.5", 9100)}

        result = await e2e_collector.collect_once()
        metrics = result.results["10.0.0.5:9100"]
        assert isinstance(metrics, MetricsResponse)
        assert metrics.host == "node-5"
        assert metrics.memory.mem_available <= metrics.memory.mem_total
        assert metrics.memory.mem_free <= metrics.memory.mem_total
        assert metrics.net_usage == 987654321

    async def test_agent_sampling_failure_surfaces(self, registry, sampler, e2e_collector):
        await registry.register("10.0.0.5", "9100")
        sampler.fail = True

        result = await e2e_collector.collect_once()

        err = result.results["10.0.0.5:9100"]
        assert isinstance(err, RemoteMetricUnavailable)
        assert "psutil unavailable" in err.message
