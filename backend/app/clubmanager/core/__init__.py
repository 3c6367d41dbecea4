"""Core package"""
from clubmanager.core.config import settings
from clubmanager.core.errors import ApiError, register_exception_handlers
from clubmanager.core.responses import ApiResponse, ok

__all__ = [
    "settings",
    "ApiError",
    "register_exception_handlers",
    "ApiResponse",
    "ok",
]
