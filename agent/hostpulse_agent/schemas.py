"""
协议请求/响应模型

定义指标查询 (RequestMetrics) 与注册 (Register) 两个交换的数据结构。
"""
from pydantic import BaseModel, Field


class MetricsRequest(BaseModel):
    """指标查询请求体，无字段。"""


class Memory(BaseModel):
    """内存快照（字节）。"""
    mem_total: int = Field(ge=0)
    mem_free: int = Field(ge=0)
    mem_available: int = Field(ge=0)
    buffers: int = Field(ge=0)
    cached: int = Field(ge=0)


class MetricsResponse(BaseModel):
    """指标查询响应体。"""
    host: str = Field(min_length=1)
    cpu_usage: float = Field(ge=0, le=100)  # 百分比
    memory: Memory
    net_usage: int = Field(ge=0)  # 累计收发字节数


class RegistrationRequest(BaseModel):
    """注册请求体，port 为 Agent 指标服务监听端口。"""
    port: str


class RegistrationResponse(BaseModel):
    """注册响应体。"""
    status: str
