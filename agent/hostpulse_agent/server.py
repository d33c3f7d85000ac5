"""
指标服务模块 (MetricsEndpoint)

以 FastAPI 暴露 RequestMetrics 接口。每次请求都重新采样，不缓存结果；
采样失败时返回 503 与统一错误结构，不返回任何指标数据。
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from hostpulse_agent import __version__
from hostpulse_agent.collector import MetricsSampler, MetricUnavailable
from hostpulse_agent.schemas import MetricsRequest, MetricsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["metrics"])


def get_sampler(request: Request) -> MetricsSampler:
    return request.app.state.sampler


@router.post("/metrics", response_model=MetricsResponse)
def request_metrics(
    body: Optional[MetricsRequest] = None,
    sampler: MetricsSampler = Depends(get_sampler),
):
    """采集并返回当前主机指标。

    同步函数，由 FastAPI 放入线程池执行，避免阻塞事件循环（首次采样会阻塞 cpu_window 秒）。
    """
    metrics = sampler.sample()
    return MetricsResponse(**metrics.to_dict())


def create_app(sampler: MetricsSampler) -> FastAPI:
    """创建 Agent 指标服务应用。"""
    app = FastAPI(title="HostPulse Agent", version=__version__)
    app.state.sampler = sampler

    @app.exception_handler(MetricUnavailable)
    async def metric_unavailable_handler(request: Request, exc: MetricUnavailable) -> JSONResponse:
        logger.warning("Metrics sampling failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={
                "error": "metric_unavailable",
                "message": str(exc),
                "detail": None,
                "status_code": 503,
            },
        )

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
