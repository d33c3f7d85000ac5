"""
指标采集任务模块。

按固定周期执行采集，记录每个周期的成功/失败数量；
只保留最近一次周期的结果（Collector.latest），不保存历史。
"""
import asyncio
import logging

from app.services.collector import Collector

logger = logging.getLogger(__name__)

POLL_INTERVAL = 15  # 采集周期（秒）


async def collect_cycle(collector: Collector) -> None:
    """执行一次采集并记录汇总。"""
    result = await collector.collect_once()
    if not result.results:
        logger.debug("No registered agents to collect from")
        return
    logger.info(
        f"Collected metrics from {len(result.succeeded)}/{len(result.results)} agent(s), "
        f"{len(result.failed)} failed"
    )


async def collection_loop(collector: Collector, interval: int = POLL_INTERVAL):
    """采集后台循环。"""
    logger.info(f"Collection loop started (interval={interval}s, timeout={collector.timeout}s)")
    while True:
        try:
            await collect_cycle(collector)
        except Exception:
            logger.exception("Error in collection loop")
        await asyncio.sleep(interval)
