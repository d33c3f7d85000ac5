"""
系统指标采集模块。

使用 psutil 采集 CPU、内存、网络指标，生成不可变的时点快照 (HostMetrics)。
底层数据源不可用时抛出 MetricUnavailable，调用方据此区分"使用率为零"与"无法测量"。

指标语义：
- cpu_usage：百分比 0-100，统计区间为同一进程内上一次采样至今；
  首次采样使用固定的阻塞窗口（cpu_window 秒）。
- net_usage：所有非回环网卡自开机以来的累计收发字节数，不是速率。
- memory：采样时刻的精确字节数，满足 mem_free <= mem_total、mem_available <= mem_total。
"""
import logging
import re
import socket
import threading
from dataclasses import asdict, dataclass
from pathlib import Path

import psutil

from hostpulse_agent.config import AgentConfig

logger = logging.getLogger(__name__)

# /proc/meminfo 字段名 -> MemorySnapshot 字段名
MEMINFO_FIELDS = {
    "MemTotal": "mem_total",
    "MemFree": "mem_free",
    "MemAvailable": "mem_available",
    "Buffers": "buffers",
    "Cached": "cached",
}

_LOOPBACK_RE = re.compile(r"^lo\d*$")


class MetricUnavailable(Exception):
    """系统指标无法读取。"""


@dataclass(frozen=True)
class MemorySnapshot:
    """内存快照，单位均为字节。"""
    mem_total: int
    mem_free: int
    mem_available: int
    buffers: int
    cached: int

    def validate(self) -> None:
        """校验内存不变量，不满足时抛出 MetricUnavailable。"""
        for name, value in asdict(self).items():
            if value < 0:
                raise MetricUnavailable(f"Negative memory value: {name}={value}")
        if self.mem_free > self.mem_total:
            raise MetricUnavailable(f"mem_free ({self.mem_free}) exceeds mem_total ({self.mem_total})")
        if self.mem_available > self.mem_total:
            raise MetricUnavailable(
                f"mem_available ({self.mem_available}) exceeds mem_total ({self.mem_total})"
            )


@dataclass(frozen=True)
class HostMetrics:
    """单次采样得到的主机指标，构造后不再修改。"""
    host: str
    cpu_usage: float
    memory: MemorySnapshot
    net_usage: int

    def to_dict(self) -> dict:
        return asdict(self)


def parse_meminfo(text: str) -> MemorySnapshot:
    """解析 /proc/meminfo 内容。

    数值单位为 kB（实际为 KiB），换算为字节。缺少任一字段或数值无法解析时
    抛出 MetricUnavailable。
    """
    values = {}
    for line in text.splitlines():
        key, sep, rest = line.partition(":")
        if not sep or key not in MEMINFO_FIELDS:
            continue
        parts = rest.split()
        if not parts:
            raise MetricUnavailable(f"Empty meminfo value for {key}")
        try:
            amount = int(parts[0])
        except ValueError:
            raise MetricUnavailable(f"Bad meminfo value for {key}: {parts[0]!r}")
        unit = parts[1].lower() if len(parts) > 1 else ""
        values[MEMINFO_FIELDS[key]] = amount * 1024 if unit == "kb" else amount

    missing = [k for k, v in MEMINFO_FIELDS.items() if v not in values]
    if missing:
        raise MetricUnavailable(f"Missing meminfo fields: {', '.join(missing)}")
    return MemorySnapshot(**values)


def read_hostname(path: str) -> str:
    """读取主机名文件，文件不存在或不可读时返回空字符串。"""
    if not path:
        return ""
    try:
        return Path(path).read_text().strip()
    except OSError:
        logger.debug("Hostname file %s not readable", path)
        return ""


class MetricsSampler:
    """按需采集本机指标 (MetricsProvider)。

    sample() 之间唯一保留的状态是 CPU 统计起点；采样过程加锁串行，
    保证"上次采样至今"的 CPU 窗口在并发调用下含义明确。
    """

    def __init__(
        self,
        host_name: str = "",
        hostname_path: str = "/etc/hostname",
        proc_dir: str = "",
        cpu_window: float = 0.1,
    ):
        self.host_name = host_name
        self.hostname_path = hostname_path
        self.proc_dir = proc_dir
        self.cpu_window = cpu_window
        self._lock = threading.Lock()
        self._primed = False

    @classmethod
    def from_config(cls, config: AgentConfig) -> "MetricsSampler":
        return cls(
            host_name=config.host.name,
            hostname_path=config.host.hostname_path,
            proc_dir=config.metrics.proc_dir,
            cpu_window=config.metrics.cpu_window,
        )

    def sample(self) -> HostMetrics:
        """采集一次完整快照。

        Raises:
            MetricUnavailable: 任一数据源读取失败或数据不满足不变量。
        """
        with self._lock:
            try:
                cpu_usage = self._cpu_usage()
                memory = self._memory()
                net_usage = self._net_usage()
            except MetricUnavailable:
                raise
            except (psutil.Error, OSError, RuntimeError, NotImplementedError) as e:
                raise MetricUnavailable(f"System metrics query failed: {e}") from e

        memory.validate()
        host = self._hostname()
        if not host:
            raise MetricUnavailable("Could not determine hostname")

        return HostMetrics(host=host, cpu_usage=cpu_usage, memory=memory, net_usage=net_usage)

    def _cpu_usage(self) -> float:
        if self._primed:
            pct = psutil.cpu_percent(interval=None)
        else:
            pct = psutil.cpu_percent(interval=self.cpu_window)
            self._primed = True
        return min(max(float(pct), 0.0), 100.0)

    def _memory(self) -> MemorySnapshot:
        if self.proc_dir:
            path = Path(self.proc_dir) / "meminfo"
            return parse_meminfo(path.read_text())

        mem = psutil.virtual_memory()
        # buffers / cached 仅 Linux 等平台提供
        return MemorySnapshot(
            mem_total=int(mem.total),
            mem_free=int(mem.free),
            mem_available=int(mem.available),
            buffers=int(getattr(mem, "buffers", 0)),
            cached=int(getattr(mem, "cached", 0)),
        )

    def _net_usage(self) -> int:
        counters = psutil.net_io_counters(pernic=True)
        total = 0
        for name, nic in counters.items():
            if _LOOPBACK_RE.match(name):
                continue
            total += nic.bytes_sent + nic.bytes_recv
        return total

    def _hostname(self) -> str:
        if self.host_name:
            return self.host_name
        return read_hostname(self.hostname_path) or socket.gethostname().strip()
