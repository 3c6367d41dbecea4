"""ClubManager - Auth Schemas

免密登录 Pydantic 模型
"""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from clubmanager.models.user_schemas import UserResponse


class SendLoginLinkRequest(BaseModel):
    email: EmailStr


class SendLoginLinkResponse(BaseModel):
    status: str = "sent"


class ValidateTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)


class CredentialResponse(BaseModel):
    """会话凭证"""
    credential: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse
