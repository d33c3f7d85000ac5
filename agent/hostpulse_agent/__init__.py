"""HostPulse Agent - 轻量级主机指标代理。"""

__version__ = "0.1.0"
