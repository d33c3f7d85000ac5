"""HostPulse Collector - 主机指标采集与 Agent 注册中心。"""

__version__ = "0.1.0"
