"""
Agent 运行时模块。

在同一事件循环中运行指标服务 (uvicorn) 与注册续期任务：
先启动指标服务并等待其开始监听，再向 Collector 注册；服务退出时尽力注销。
"""
import asyncio
import logging
from typing import Optional

import uvicorn

from hostpulse_agent.collector import MetricsSampler
from hostpulse_agent.config import AgentConfig
from hostpulse_agent.registrar import AgentRegistrar
from hostpulse_agent.server import create_app

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL = 0.05


class AgentRuntime:
    def __init__(
        self,
        config: AgentConfig,
        sampler: Optional[MetricsSampler] = None,
        registrar: Optional[AgentRegistrar] = None,
    ):
        self.config = config
        self.sampler = sampler or MetricsSampler.from_config(config)
        self.registrar = registrar or AgentRegistrar(config)
        self.app = create_app(self.sampler)
        self.server = uvicorn.Server(
            uvicorn.Config(
                app=self.app,
                host=config.server.host,
                port=config.server.port,
                log_level="info",
            )
        )

    async def _wait_started(self, server_task: asyncio.Task):
        """等待 uvicorn 开始监听；服务提前退出时抛出异常。"""
        while not self.server.started:
            if server_task.done():
                server_task.result()
                raise RuntimeError("Metrics server exited before startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

    async def start(self):
        """启动 Agent，直到指标服务退出（SIGINT/SIGTERM 由 uvicorn 处理）。"""
        server_task = asyncio.create_task(self.server.serve())
        refresh_task: Optional[asyncio.Task] = None
        try:
            await self._wait_started(server_task)
            logger.info(f"Metrics server listening on {self.config.server.host}:{self.config.server.port}")

            try:
                await self.registrar.register_with_retry()
            except Exception:
                self.server.should_exit = True
                raise

            refresh_task = asyncio.create_task(self.registrar.refresh_loop())
            logger.info("Agent running. Press Ctrl+C to stop.")
            await server_task
        finally:
            if refresh_task is not None:
                refresh_task.cancel()
                try:
                    await refresh_task
                except asyncio.CancelledError:
                    pass
            if not server_task.done():
                self.server.should_exit = True
                await asyncio.gather(server_task, return_exceptions=True)
            await self.registrar.deregister()
            await self.registrar.close()
