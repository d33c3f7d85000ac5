"""
Agent 注册表服务 (Agent Registration Table Service)

Collector 端唯一的共享可变状态：记录 (地址, 端口) → 注册记录。
所有读写都持有同一把表级 asyncio.Lock，防止并发注册互相覆盖。
过期策略为 TTL：last_seen 超过 ttl 秒的记录视为失效，list_registered() 不再返回，
并由后台清理任务删除。ttl 为 0 时永不过期，只能显式注销。

Sole shared mutable state of the collector, keyed by (address, port) and guarded by a
single table-wide lock. Records whose last_seen is older than the TTL are no longer
listed and are removed by the background sweeper.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.core.exceptions import InvalidRegistration

logger = logging.getLogger(__name__)

MAX_PORT = 65535
_PORT_RE = re.compile(r"^[0-9]{1,5}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_port(value) -> int:
    """校验端口：ASCII 数字字符串或整数，范围 0-65535。"""
    if isinstance(value, bool):
        raise InvalidRegistration(f"Invalid port: {value!r}")
    if isinstance(value, int):
        port = value
    elif isinstance(value, str) and _PORT_RE.match(value):
        port = int(value)
    else:
        raise InvalidRegistration(f"Invalid port: {value!r}")
    if not 0 <= port <= MAX_PORT:
        raise InvalidRegistration(f"Port out of range: {value!r}", detail=f"expected 0-{MAX_PORT}")
    return port


@dataclass(frozen=True)
class RegistrationRecord:
    """一条 Agent 注册记录，address 取自入站连接对端，不信任请求体。"""
    address: str
    port: int
    registered_at: datetime
    last_seen: datetime

    @property
    def host(self) -> str:
        # IPv6 地址在 URL 中需要方括号
        return f"[{self.address}]" if ":" in self.address else self.address

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.endpoint}"


class RegistrationTable:
    def __init__(self, ttl: int = 300, clock: Callable[[], datetime] = _utcnow):
        self.ttl = ttl
        self._clock = clock
        self._records: dict[tuple[str, int], RegistrationRecord] = {}
        self._lock = asyncio.Lock()

    def _is_live(self, record: RegistrationRecord, now: datetime) -> bool:
        if not self.ttl:
            return True
        return now - record.last_seen <= timedelta(seconds=self.ttl)

    async def register(self, address: str | None, port) -> tuple[RegistrationRecord, bool]:
        """插入或刷新注册记录，返回 (记录, 是否新建)。

        Raises:
            InvalidRegistration: 端口非法或对端地址未知，注册表不变。
        """
        if not address:
            raise InvalidRegistration("Peer address unknown")
        port_num = parse_port(port)

        async with self._lock:
            now = self._clock()
            key = (address, port_num)
            existing = self._records.get(key)
            if existing is not None and self._is_live(existing, now):
                record = replace(existing, last_seen=now)
                created = False
            else:
                record = RegistrationRecord(address=address, port=port_num, registered_at=now, last_seen=now)
                created = True
            self._records[key] = record

        if created:
            logger.info(f"Agent registered: {record.endpoint}")
        else:
            logger.debug(f"Agent registration refreshed: {record.endpoint}")
        return record, created

    async def deregister(self, address: str | None, port) -> bool:
        """显式注销，返回记录是否存在。"""
        if not address:
            raise InvalidRegistration("Peer address unknown")
        port_num = parse_port(port)
        async with self._lock:
            removed = self._records.pop((address, port_num), None)
        if removed is not None:
            logger.info(f"Agent deregistered: {removed.endpoint}")
        return removed is not None

    async def list_registered(self) -> list[RegistrationRecord]:
        """返回当前存活记录的快照，按 (地址, 端口) 排序。"""
        async with self._lock:
            now = self._clock()
            live = [r for r in self._records.values() if self._is_live(r, now)]
        return sorted(live, key=lambda r: (r.address, r.port))

    async def expire(self) -> list[RegistrationRecord]:
        """删除超过 TTL 的记录，返回被删除的记录。"""
        if not self.ttl:
            return []
        async with self._lock:
            now = self._clock()
            expired = [r for r in self._records.values() if not self._is_live(r, now)]
            for record in expired:
                del self._records[(record.address, record.port)]
        for record in expired:
            logger.warning(f"Agent {record.endpoint} registration expired (last seen {record.last_seen.isoformat()})")
        return expired
