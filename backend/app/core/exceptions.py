"""
全局异常处理模块 (Global Exception Handling Module)

定义业务异常类、Agent 采集异常类和 FastAPI 全局异常处理器，提供统一的错误响应格式。
所有未捕获的异常都会被转换为结构化 JSON 响应，避免裸 500 错误。

Defines business exception classes, agent collection errors and FastAPI global exception
handlers, providing a unified error response format. All uncaught exceptions are converted
to structured JSON responses, preventing raw 500 errors.
"""
import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# 注册/注销接口前缀，请求体格式错误时统一返回 rejected
REGISTRATION_PATH_PREFIX = "/api/v1/agent/"


# ============================================================
# 业务异常类 (Business Exception Classes)
# ============================================================

class BusinessError(Exception):
    """业务异常基类 (Base Business Exception)"""
    status_code: int = 400
    error: str = "business_error"
    status: Optional[str] = None

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class NotFoundError(BusinessError):
    """资源不存在 (Resource Not Found)"""
    status_code = 404
    error = "not_found"


class ValidationError(BusinessError):
    """数据校验失败 (Validation Error)"""
    status_code = 422
    error = "validation_error"


class InvalidRegistration(ValidationError):
    """注册请求非法，注册表保持不变 (Invalid Registration, table left unchanged)"""
    error = "invalid_registration"
    status = "rejected"


# ============================================================
# Agent 采集异常类 (Agent Collection Errors)
# 按 Agent 记录在采集结果中，从不中断整个采集周期
# Recorded per agent in a cycle result, never raised out of a cycle
# ============================================================

class AgentError(Exception):
    """Agent 查询失败基类 (Base Agent Query Error)"""
    kind: str = "agent_error"

    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        self.message = message
        super().__init__(f"{endpoint}: {message}")

    def to_dict(self) -> dict:
        return {"status": "error", "error": self.kind, "message": self.message}


class AgentUnreachable(AgentError):
    """网络不可达、连接被拒绝 (Network failure contacting the agent)"""
    kind = "unreachable"


class AgentTimeout(AgentError):
    """单次请求超时 (Per-call deadline exceeded)"""
    kind = "timeout"


class RemoteMetricUnavailable(AgentError):
    """Agent 无法采样 (Agent reported metric_unavailable)"""
    kind = "metric_unavailable"


class BadAgentResponse(AgentError):
    """响应状态或内容不合法 (Unexpected status or invalid body)"""
    kind = "bad_response"


# ============================================================
# 全局异常处理器注册 (Global Exception Handler Registration)
# ============================================================

def register_exception_handlers(app: FastAPI) -> None:
    """
    注册全局异常处理器到 FastAPI 应用 (Register global exception handlers to FastAPI app)

    处理优先级：
    1. BusinessError 子类 → 对应 HTTP 状态码 + 结构化响应
    2. HTTPException → 保持原样，包装为统一格式
    3. RequestValidationError → 422；注册相关接口按 InvalidRegistration 返回
    4. Exception → 500 + 完整 traceback 日志
    """

    def business_error_response(exc: BusinessError) -> JSONResponse:
        content = {
            "error": exc.error,
            "message": exc.message,
            "detail": exc.detail,
            "status_code": exc.status_code,
        }
        if exc.status is not None:
            content["status"] = exc.status
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
        return business_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        detail = "; ".join(str(e.get("msg", "")) for e in exc.errors())
        if request.url.path.startswith(REGISTRATION_PATH_PREFIX):
            return business_error_response(InvalidRegistration("Malformed registration request", detail=detail))
        return business_error_response(ValidationError("Request validation failed", detail=detail))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": str(exc.detail),
                "detail": None,
                "status_code": exc.status_code,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        # 记录完整 traceback 用于调试 (Log full traceback for debugging)
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(exc),
            traceback.format_exc(),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "Internal server error, please try again later",
                "detail": None,
                "status_code": 500,
            },
        )
