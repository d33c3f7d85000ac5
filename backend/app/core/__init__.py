"""
核心模块包 (Core Module Package)

HostPulse Collector 的核心基础组件：配置管理、异常定义与处理、依赖注入。

Core building blocks of the HostPulse collector: configuration, exception definitions and
handlers, dependency injection.
"""
