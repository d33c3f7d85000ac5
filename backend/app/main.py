"""
HostPulse Collector 应用入口模块 (HostPulse Collector Application Entry Module)

负责 FastAPI 应用的完整生命周期管理：创建注册表与采集器、注册路由、
启动注册过期清理与周期采集两个后台任务。

Main application entry point of the HostPulse collector, responsible for the FastAPI
application lifecycle: creates the registration table and collector, registers routes,
and starts the registration sweeper and the polling loop.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from app import __version__
from app.core.config import settings as app_settings
from app.core.deps import get_registry
from app.core.exceptions import register_exception_handlers
from app.routers import agent, metrics
from app.services.agent_client import AgentMetricsClient
from app.services.collector import Collector
from app.services.registry import RegistrationTable
from app.tasks.collection_loop import collection_loop
from app.tasks.registration_sweeper import registration_sweeper_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理器 (Application Lifecycle Manager)

    启动时创建注册表、Agent 客户端和采集器并启动后台任务；关闭时取消任务并释放连接。

    Creates the registration table, agent client and collector at startup and starts the
    background tasks; cancels them and releases connections at shutdown.
    """
    registry = RegistrationTable(ttl=app_settings.registration_ttl)
    client = AgentMetricsClient(
        timeout=app_settings.request_timeout,
        metrics_path=app_settings.agent_metrics_path,
    )
    collector = Collector(
        registry,
        client,
        timeout=app_settings.request_timeout,
        max_concurrency=app_settings.max_concurrency,
    )
    app.state.registry = registry
    app.state.collector = collector

    # 启动后台定时任务 (Start background scheduled tasks)
    sweeper_task = asyncio.create_task(registration_sweeper_loop(registry, app_settings.sweep_interval))
    collect_task = asyncio.create_task(collection_loop(collector, app_settings.poll_interval))
    logger.info(
        f"Collector started (ttl={app_settings.registration_ttl}s, poll={app_settings.poll_interval}s)"
    )

    yield

    # 关闭阶段：取消任务并释放连接 (Shutdown phase: cancel tasks and release connections)
    for task in (sweeper_task, collect_task):
        task.cancel()
    await asyncio.gather(sweeper_task, collect_task, return_exceptions=True)
    await client.close()


# 创建 FastAPI 应用实例 (Create FastAPI application instance)
app = FastAPI(
    title="HostPulse Collector",
    description="Host metrics collector and agent registry",
    version=__version__,
    lifespan=lifespan,
)

# 注册全局异常处理器 (Register global exception handlers)
register_exception_handlers(app)

# 注册 API 路由模块 (Register API router modules)
app.include_router(agent.router)  # Agent 注册 (Agent registration)
app.include_router(metrics.router)  # 指标采集 (Metrics collection)


@app.get("/health")
@app.get("/api/v1/health")
async def health(registry: RegistrationTable = Depends(get_registry)):
    """
    健康检查接口 (Health Check Endpoint)

    返回 Collector 状态与当前存活 Agent 数量。

    Returns the collector status and the number of live agent registrations.
    """
    live = await registry.list_registered()
    return {
        "status": "ok",
        "agents": len(live),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
