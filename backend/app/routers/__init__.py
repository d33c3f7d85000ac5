"""
HostPulse 路由模块包 (HostPulse Router Module Package)

- agent.py: Agent 注册、注销、注册表查询
- metrics.py: 按需采集与最近一次采集结果
"""
