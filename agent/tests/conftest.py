"""
HostPulse Agent 测试基础配置

提供固定快照、可控的采样器桩，以及 psutil 返回值构造工具。
"""
from types import SimpleNamespace

import pytest

from hostpulse_agent.collector import HostMetrics, MemorySnapshot, MetricUnavailable


class StubSampler:
    """记录调用次数的采样器桩，fail 为真时抛出 MetricUnavailable。"""
    def __init__(self, metrics: HostMetrics):
        self.metrics = metrics
        self.calls = 0
        self.fail = False

    def sample(self) -> HostMetrics:
        self.calls += 1
        if self.fail:
            raise MetricUnavailable("meminfo not readable")
        return self.metrics


@pytest.fixture
def host_metrics() -> HostMetrics:
    return HostMetrics(
        host="web-1",
        cpu_usage=37.5,
        memory=MemorySnapshot(
            mem_total=8 * 1024 ** 3,
            mem_free=1 * 1024 ** 3,
            mem_available=4 * 1024 ** 3,
            buffers=256 * 1024 ** 2,
            cached=2 * 1024 ** 3,
        ),
        net_usage=5_000_000,
    )


@pytest.fixture
def stub_sampler(host_metrics) -> StubSampler:
    return StubSampler(host_metrics)


@pytest.fixture
def virtual_memory():
    """构造 psutil.virtual_memory() 返回值。"""
    def _make(total=1000, free=200, available=600, buffers=50, cached=150):
        return SimpleNamespace(total=total, free=free, available=available, buffers=buffers, cached=cached)
    return _make


@pytest.fixture
def nic():
    """构造 psutil.net_io_counters(pernic=True) 中的单个网卡计数。"""
    def _make(sent=0, recv=0):
        return SimpleNamespace(bytes_sent=sent, bytes_recv=recv)
    return _make
