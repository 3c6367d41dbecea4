"""ClubManager - Errors

统一的业务异常与 FastAPI 异常处理器
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """业务异常基类

    code 是稳定的机器可读标识，message 面向用户。
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "请求无效"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)


# ========== 认证 ==========

class TokenNotFound(ApiError):
    code = "TOKEN_NOT_FOUND"
    message = "登录链接无效"


class TokenExpired(ApiError):
    code = "TOKEN_EXPIRED"
    message = "登录链接已过期"


class TokenAlreadyUsed(ApiError):
    code = "TOKEN_ALREADY_USED"
    message = "登录链接已被使用"


class InvalidCredential(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "无效或过期的认证信息"


class PermissionDenied(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "权限不足"


# ========== 资源 ==========

class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "资源不存在"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    message = "用户不存在"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "资源冲突"


# ========== 导入 / 邮件 ==========

class ImportFileError(ApiError):
    """整个导入文件不可用（与单行校验错误区分）"""
    code = "IMPORT_FILE_INVALID"
    message = "CSV 文件无效"


class MailDeliveryError(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "MAIL_DELIVERY_FAILED"
    message = "邮件发送失败"


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
}


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """错误信封"""
    return {
        "status": "error",
        "code": code,
        "message": message,
        "details": details,
    }


def _auth_headers(status_code: int) -> Optional[dict[str, str]]:
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return {"WWW-Authenticate": "Bearer"}
    return None


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, jsonable_encoder(exc.details)),
        headers=_auth_headers(exc.status_code),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = dict(exc.headers or {})
    headers.update(_auth_headers(exc.status_code) or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(_HTTP_CODES.get(exc.status_code, "HTTP_ERROR"), str(exc.detail)),
        headers=headers or None,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=error_body("VALIDATION_ERROR", "请求参数校验失败", jsonable_encoder(exc.errors())),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """注册全部异常处理器"""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
