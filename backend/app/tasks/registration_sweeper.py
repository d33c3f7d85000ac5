"""
注册过期清理任务模块。

定期扫描注册表，把 last_seen 超过 TTL（默认 5 分钟）的 Agent 记录删除。
Agent 通过周期性重新注册续期，停止续期的 Agent 会在下一次扫描时被移出采集范围。
"""
import asyncio
import logging

from app.services.registry import RegistrationTable

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60  # 检查间隔（秒）


async def expire_registrations(registry: RegistrationTable) -> int:
    """删除过期注册记录，返回删除数量。"""
    expired = await registry.expire()
    if expired:
        logger.info(f"Expired {len(expired)} agent registration(s)")
    return len(expired)


async def registration_sweeper_loop(registry: RegistrationTable, interval: int = CHECK_INTERVAL):
    """过期清理后台循环。"""
    logger.info(f"Registration sweeper started (ttl={registry.ttl}s, interval={interval}s)")
    while True:
        try:
            await expire_registrations(registry)
        except Exception:
            logger.exception("Error in registration sweeper")
        await asyncio.sleep(interval)
