"""
Agent 注册路由

提供 Agent 注册、注销以及注册表查询接口。Agent 地址一律取自连接对端。
"""
from fastapi import APIRouter, Depends, Request

from app.core.deps import get_registry, peer_address
from app.schemas.agent import (
    AgentListResponse,
    AgentRegisterRequest,
    AgentRegisterResponse,
    RegistrationRecordResponse,
)
from app.services.registry import RegistrationTable

router = APIRouter(prefix="/api/v1", tags=["agent"])


@router.post("/agent/register", response_model=AgentRegisterResponse)
async def register_agent(
    body: AgentRegisterRequest,
    request: Request,
    registry: RegistrationTable = Depends(get_registry),
):
    """Agent 注册接口，幂等操作：已存在则刷新 last_seen，不存在则新建记录。"""
    await registry.register(peer_address(request), body.port)
    return AgentRegisterResponse(status="ok")


@router.post("/agent/deregister", response_model=AgentRegisterResponse)
async def deregister_agent(
    body: AgentRegisterRequest,
    request: Request,
    registry: RegistrationTable = Depends(get_registry),
):
    """Agent 注销接口，记录不存在时返回 not_registered。"""
    removed = await registry.deregister(peer_address(request), body.port)
    return AgentRegisterResponse(status="ok" if removed else "not_registered")


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(registry: RegistrationTable = Depends(get_registry)):
    """列出当前存活的注册记录。"""
    records = await registry.list_registered()
    return AgentListResponse(
        agents=[RegistrationRecordResponse.model_validate(r) for r in records],
        total=len(records),
        ttl_seconds=registry.ttl,
    )
