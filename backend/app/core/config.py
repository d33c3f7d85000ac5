"""
应用配置模块 (Application Configuration Module)

使用 Pydantic Settings 管理 HostPulse Collector 的所有配置项，支持从 .env 文件和环境变量读取。
提供监听地址、注册表 TTL、采集周期与并发等配置。

Uses Pydantic Settings to manage all configuration items of the HostPulse collector,
supporting reading from .env files and environment variables. Covers the listen address,
registration TTL, polling cadence and per-agent request limits.
"""
import logging

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    应用全局配置类 (Application Global Configuration Class)

    字段名自动映射同名环境变量（不区分大小写），支持 .env 文件加载。

    Field names automatically map to same-named environment variables (case insensitive),
    supporting .env file loading.
    """

    # 监听配置 (Listen Configuration)
    collector_host: str = "127.0.0.1"  # Collector 监听地址 (Collector Bind Host)
    collector_port: int = 3001  # Collector 监听端口 (Collector Bind Port)

    # 注册表配置 (Registration Table Configuration)
    registration_ttl: int = 300  # 注册过期时间（秒），0 表示永不过期 (Registration TTL Seconds, 0 = never)
    sweep_interval: int = 60  # 过期清理间隔（秒） (Expiry Sweep Interval Seconds)

    # 采集配置 (Collection Configuration)
    poll_interval: int = 15  # 采集周期（秒） (Polling Interval Seconds)
    request_timeout: float = 5.0  # 单个 Agent 请求超时（秒） (Per-agent Request Timeout Seconds)
    max_concurrency: int = 16  # 同时查询的 Agent 上限 (Max Concurrent Agent Queries)
    agent_metrics_path: str = "/api/v1/metrics"  # Agent 指标接口路径 (Agent Metrics Path)

    log_level: str = "info"  # 日志级别 (Log Level)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}  # Pydantic 配置：自动加载 .env 文件 (Pydantic Config: Auto-load .env file)


# 全局配置实例 (Global Configuration Instance)
settings = Settings()

if settings.registration_ttl and settings.registration_ttl <= settings.sweep_interval:
    logger.warning(
        "REGISTRATION_TTL (%ss) 不大于 SWEEP_INTERVAL (%ss)，过期记录可能延迟清理"
        " | REGISTRATION_TTL is not larger than SWEEP_INTERVAL; expired records may linger",
        settings.registration_ttl,
        settings.sweep_interval,
    )
