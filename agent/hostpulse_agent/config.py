"""
Agent 配置加载模块。

定义所有配置数据类，并从 YAML 文件加载配置。
支持环境变量覆盖（如 HOSTPULSE_COLLECTOR_URL）和时间间隔简写（如 '15s'、'1m'）。
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Agent 自身监听端口的合法范围
MIN_SERVER_PORT = 1024
MAX_SERVER_PORT = 65535


class ConfigError(ValueError):
    """配置值非法。"""


@dataclass
class CollectorConfig:
    """Collector 连接与注册配置。"""
    url: str = "http://127.0.0.1:3001"
    register_interval: int = 60  # 重新注册间隔（秒），需小于 Collector 的 TTL
    retry_attempts: int = 10
    timeout: float = 10.0


@dataclass
class ServerConfig:
    """指标服务监听配置。"""
    host: str = "0.0.0.0"
    port: int = 9100


@dataclass
class HostConfig:
    """主机标识配置。"""
    name: str = ""
    hostname_path: str = "/etc/hostname"


@dataclass
class MetricsConfig:
    """指标采集配置。"""
    proc_dir: str = ""  # 为空时使用 psutil，否则解析 <proc_dir>/meminfo
    cpu_window: float = 0.1  # 首次采样的 CPU 统计窗口（秒）


@dataclass
class AgentConfig:
    """Agent 主配置，聚合所有子配置。"""
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    host: HostConfig = field(default_factory=HostConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)


def _parse_interval(val) -> int:
    """解析时间间隔，支持 '15s'、'1m' 等简写格式。"""
    if isinstance(val, int):
        return val
    s = str(val).strip().lower()
    if s.endswith("s"):
        return int(s[:-1])
    if s.endswith("m"):
        return int(s[:-1]) * 60
    return int(s)


def parse_server_port(val) -> int:
    """校验 Agent 监听端口，必须位于 1024-65535。"""
    if val is None or str(val).strip() == "":
        raise ConfigError("Missing config value: server.port")
    try:
        port = int(str(val).strip())
    except ValueError:
        raise ConfigError(f"Bad config value for server.port: {val!r}")
    if not MIN_SERVER_PORT <= port <= MAX_SERVER_PORT:
        raise ConfigError(
            f"Bad config value for server.port: {val!r} "
            f"(expected {MIN_SERVER_PORT}-{MAX_SERVER_PORT})"
        )
    return port


def load_config(path: str) -> AgentConfig:
    """从 YAML 文件加载 Agent 配置。

    Args:
        path: 配置文件路径。

    Returns:
        解析后的 AgentConfig 实例。

    Raises:
        FileNotFoundError: 配置文件不存在时抛出。
        ConfigError: 配置值非法时抛出。
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p) as f:
        data = yaml.safe_load(f) or {}

    cfg = AgentConfig()

    # 解析 Collector 配置，URL 优先从环境变量读取
    col = data.get("collector", {})
    url = os.environ.get("HOSTPULSE_COLLECTOR_URL", col.get("url", cfg.collector.url))
    cfg.collector.url = url.rstrip("/")
    cfg.collector.register_interval = _parse_interval(
        col.get("register_interval", cfg.collector.register_interval)
    )
    cfg.collector.retry_attempts = int(col.get("retry_attempts", cfg.collector.retry_attempts))
    cfg.collector.timeout = float(col.get("timeout", cfg.collector.timeout))
    if cfg.collector.register_interval <= 0:
        raise ConfigError("collector.register_interval must be positive")
    if cfg.collector.retry_attempts < 1:
        raise ConfigError("collector.retry_attempts must be at least 1")

    # 解析监听配置
    srv = data.get("server", {})
    cfg.server.host = srv.get("host", cfg.server.host)
    cfg.server.port = parse_server_port(
        os.environ.get("HOSTPULSE_SERVER_PORT", srv.get("port", cfg.server.port))
    )

    # 解析主机配置
    h = data.get("host", {})
    cfg.host.name = h.get("name", "") or ""
    cfg.host.hostname_path = os.environ.get(
        "HOSTPULSE_HOSTNAME_PATH", h.get("hostname_path", cfg.host.hostname_path)
    )

    # 解析指标采集配置
    m = data.get("metrics", {})
    cfg.metrics.proc_dir = os.environ.get("HOSTPULSE_PROC_DIR", m.get("proc_dir", "")) or ""
    cfg.metrics.cpu_window = float(m.get("cpu_window", cfg.metrics.cpu_window))
    if cfg.metrics.cpu_window < 0:
        raise ConfigError("metrics.cpu_window must not be negative")

    return cfg
