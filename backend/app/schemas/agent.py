"""
Agent 接口请求/响应模型

定义 Agent 注册、注销、注册表查询以及指标查询响应的数据结构。
"""
from datetime import datetime

from typing import Any

from pydantic import BaseModel, Field, model_validator


class AgentRegisterRequest(BaseModel):
    """Agent 注册/注销请求体，port 为 Agent 指标服务端口；地址取自连接对端。

    port 原样交给 parse_port 校验，模型层不做类型转换。
    """
    port: Any = None


class AgentRegisterResponse(BaseModel):
    """注册结果：ok / rejected / not_registered。"""
    status: str


class RegistrationRecordResponse(BaseModel):
    """注册表中的一条记录。"""
    address: str
    port: int
    registered_at: datetime
    last_seen: datetime

    model_config = {"from_attributes": True}


class AgentListResponse(BaseModel):
    """当前存活的注册记录列表。"""
    agents: list[RegistrationRecordResponse]
    total: int
    ttl_seconds: int


class Memory(BaseModel):
    """Agent 上报的内存快照（字节），满足 mem_free/mem_available <= mem_total。"""
    mem_total: int = Field(ge=0)
    mem_free: int = Field(ge=0)
    mem_available: int = Field(ge=0)
    buffers: int = Field(ge=0)
    cached: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_totals(self):
        if self.mem_free > self.mem_total:
            raise ValueError("mem_free exceeds mem_total")
        if self.mem_available > self.mem_total:
            raise ValueError("mem_available exceeds mem_total")
        return self


class MetricsResponse(BaseModel):
    """Agent 指标查询响应体 (HostMetrics)。"""
    host: str = Field(min_length=1)
    cpu_usage: float = Field(ge=0, le=100)  # 百分比
    memory: Memory
    net_usage: int = Field(ge=0)  # 累计收发字节数

    model_config = {"frozen": True}
