"""
Agent 指标查询客户端 (Agent Metrics Client)

通过 HTTP 调用 Agent 的 RequestMetrics 接口，并把各类失败映射为 AgentError 子类：
超时 → AgentTimeout，连接失败 → AgentUnreachable，Agent 采样失败 → RemoteMetricUnavailable，
其他状态码或非法响应体 → BadAgentResponse。
"""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    AgentTimeout,
    AgentUnreachable,
    BadAgentResponse,
    RemoteMetricUnavailable,
)
from app.schemas.agent import MetricsResponse
from app.services.registry import RegistrationRecord

logger = logging.getLogger(__name__)


class AgentMetricsClient:
    """共享一个 httpx.AsyncClient 的 Agent 查询客户端。"""

    def __init__(
        self,
        timeout: float = 5.0,
        metrics_path: str = "/api/v1/metrics",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.metrics_path = metrics_path
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def request_metrics(self, record: RegistrationRecord) -> MetricsResponse:
        """查询单个 Agent 的当前指标。"""
        endpoint = record.endpoint
        url = f"{record.base_url}{self.metrics_path}"
        client = await self._get_client()
        try:
            resp = await client.post(url, json={})
        except httpx.TimeoutException:
            raise AgentTimeout(endpoint, f"Request timed out after {self.timeout}s")
        except (httpx.TransportError, httpx.InvalidURL) as e:
            raise AgentUnreachable(endpoint, str(e) or type(e).__name__)
        except httpx.HTTPError as e:
            raise BadAgentResponse(endpoint, str(e) or type(e).__name__)

        if resp.status_code == 503:
            body = _json_or_empty(resp)
            if body.get("error") == "metric_unavailable":
                raise RemoteMetricUnavailable(endpoint, body.get("message") or "Metrics unavailable")
        if resp.status_code != 200:
            raise BadAgentResponse(endpoint, f"Unexpected status {resp.status_code}")

        try:
            return MetricsResponse.model_validate_json(resp.content)
        except PydanticValidationError as e:
            raise BadAgentResponse(endpoint, f"Invalid metrics body: {e.error_count()} error(s)")

    async def close(self):
        if self._client:
            await self._client.aclose()


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
