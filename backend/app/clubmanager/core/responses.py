"""ClubManager - Response Envelope

所有 JSON 响应统一使用 {"status", "data", "message"} 信封
"""
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """成功响应信封"""
    status: Literal["success"] = "success"
    data: Optional[T] = None
    message: Optional[str] = None


def ok(data=None, message: Optional[str] = None) -> ApiResponse:
    """构造成功响应"""
    return ApiResponse(data=data, message=message)
