"""
FastAPI 依赖项模块 (FastAPI Dependencies Module)

提供注册表与采集器的依赖注入函数。二者在应用 lifespan 中创建并挂载到 app.state，
测试中通过 app.dependency_overrides 替换。

Provides dependency injection for the registration table and the collector. Both are
created in the application lifespan and stored on app.state; tests override them.
"""
from fastapi import Request

from app.services.collector import Collector
from app.services.registry import RegistrationTable


def get_registry(request: Request) -> RegistrationTable:
    """返回当前应用的注册表 (Return the application's registration table)"""
    return request.app.state.registry


def get_collector(request: Request) -> Collector:
    """返回当前应用的采集器 (Return the application's collector)"""
    return request.app.state.collector


def peer_address(request: Request) -> str | None:
    """入站连接的对端地址，不信任请求体 (Peer address of the inbound connection)"""
    return request.client.host if request.client else None
