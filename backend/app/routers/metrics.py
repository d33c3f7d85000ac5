"""
指标查询路由模块 (Metrics Router)

GET /api/v1/metrics 立即执行一次采集周期并返回各 Agent 的结果；
GET /api/v1/metrics/latest 返回后台采集循环最近一次的结果。
"""
from fastapi import APIRouter, Depends

from app.core.deps import get_collector
from app.core.exceptions import NotFoundError
from app.services.collector import Collector

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.get("")
async def collect_metrics(collector: Collector = Depends(get_collector)):
    """按需采集所有存活 Agent 的指标，单个 Agent 失败只体现在其自身条目中。"""
    result = await collector.collect_once()
    return result.to_dict()


@router.get("/latest")
async def latest_metrics(collector: Collector = Depends(get_collector)):
    """最近一次采集周期的结果。"""
    if collector.latest is None:
        raise NotFoundError("No collection cycle has completed yet")
    return collector.latest.to_dict()
