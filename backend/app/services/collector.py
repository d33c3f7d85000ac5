"""
指标采集服务 (Metrics Collection Service)

每个采集周期列出注册表中的存活 Agent，并发查询各自指标：
- 并发数受 max_concurrency 信号量限制；
- 每次调用独立计时，超时记为 AgentTimeout，不影响其他 Agent；
- 结果按 "地址:端口" 映射为 MetricsResponse 或 AgentError，周期本身从不因单个 Agent 失败而抛出。

Each cycle queries every live agent concurrently with bounded fan-out and an independent
per-call deadline. Failures are captured per agent in the result mapping.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from app.core.exceptions import AgentError, AgentTimeout, BadAgentResponse
from app.schemas.agent import MetricsResponse
from app.services.agent_client import AgentMetricsClient
from app.services.registry import RegistrationRecord, RegistrationTable

logger = logging.getLogger(__name__)

AgentOutcome = Union[MetricsResponse, AgentError]


def memory_used(metrics: MetricsResponse) -> int:
    """已用内存 = total - free - buffers - cached，下限为 0。"""
    m = metrics.memory
    return max(m.mem_total - m.mem_free - m.buffers - m.cached, 0)


def memory_used_pct(metrics: MetricsResponse) -> float:
    """已用内存占比（0.0-1.0），total 为 0 时返回 0。"""
    total = metrics.memory.mem_total
    if total == 0:
        return 0.0
    return memory_used(metrics) / total


@dataclass
class CollectionResult:
    """一次采集周期的结果。"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    results: dict[str, AgentOutcome] = field(default_factory=dict)

    @property
    def succeeded(self) -> dict[str, MetricsResponse]:
        return {k: v for k, v in self.results.items() if isinstance(v, MetricsResponse)}

    @property
    def failed(self) -> dict[str, AgentError]:
        return {k: v for k, v in self.results.items() if isinstance(v, AgentError)}

    def to_dict(self) -> dict:
        agents = {}
        for endpoint, outcome in self.results.items():
            if isinstance(outcome, AgentError):
                agents[endpoint] = outcome.to_dict()
            else:
                agents[endpoint] = {
                    "status": "ok",
                    "metrics": outcome.model_dump(),
                    "memory_used": memory_used(outcome),
                    "memory_used_pct": round(memory_used_pct(outcome), 4),
                }
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total": len(self.results),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "agents": agents,
        }


class Collector:
    def __init__(
        self,
        registry: RegistrationTable,
        client: AgentMetricsClient,
        timeout: float = 5.0,
        max_concurrency: int = 16,
    ):
        self.registry = registry
        self.client = client
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.latest: Optional[CollectionResult] = None

    async def _query(self, record: RegistrationRecord, semaphore: asyncio.Semaphore) -> AgentOutcome:
        async with semaphore:
            try:
                return await asyncio.wait_for(self.client.request_metrics(record), timeout=self.timeout)
            except asyncio.TimeoutError:
                return AgentTimeout(record.endpoint, f"No response within {self.timeout}s")
            except AgentError as e:
                return e
            except Exception as e:
                logger.exception(f"Unexpected error querying {record.endpoint}")
                return BadAgentResponse(record.endpoint, str(e) or type(e).__name__)

    async def collect_once(self) -> CollectionResult:
        """执行一次采集周期。"""
        result = CollectionResult(started_at=datetime.now(timezone.utc))
        records = await self.registry.list_registered()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        outcomes = await asyncio.gather(*(self._query(r, semaphore) for r in records))
        for record, outcome in zip(records, outcomes):
            result.results[record.endpoint] = outcome
            if isinstance(outcome, AgentError):
                logger.warning(f"Agent {record.endpoint} {outcome.kind}: {outcome.message}")

        result.finished_at = datetime.now(timezone.utc)
        self.latest = result
        return result
