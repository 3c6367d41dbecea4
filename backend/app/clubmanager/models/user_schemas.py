"""ClubManager - User Schemas

会员管理 Pydantic 模型
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from clubmanager.database.user_models import MemberStatus, UserRole

BIRTHDAY_PATTERN = r"^(0[1-9]|1[0-2])/(0[1-9]|[12]\d|3[01])$"

OPTIONAL_TEXT_FIELDS = ("last_name", "phone", "address", "birthday")


def _blank_to_none(v):
    """去掉首尾空白，空字符串按未填写处理（与 CSV 导入一致）"""
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class UserBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    address: Optional[str] = None
    birthday: Optional[str] = Field(None, pattern=BIRTHDAY_PATTERN)
    partner_id: Optional[int] = None
    friend_id: Optional[int] = None

    @field_validator("first_name", mode="before")
    @classmethod
    def strip_first_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def normalize_text(cls, v):
        return _blank_to_none(v)


class UserCreate(UserBase):
    """创建会员"""
    email: EmailStr
    role: UserRole = UserRole.MEMBER
    status: MemberStatus = MemberStatus.ASSIGNABLE

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(BaseModel):
    """更新会员（仅更新传入字段）"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    birthday: Optional[str] = Field(None, pattern=BIRTHDAY_PATTERN)
    role: Optional[UserRole] = None
    status: Optional[MemberStatus] = None
    partner_id: Optional[int] = None
    friend_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("first_name", mode="before")
    @classmethod
    def strip_first_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def normalize_text(cls, v):
        return _blank_to_none(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class UserResponse(BaseModel):
    """会员响应"""
    id: int
    first_name: str
    last_name: Optional[str]
    full_name: str
    email: str
    phone: Optional[str]
    address: Optional[str]
    role: UserRole
    status: MemberStatus
    birthday: Optional[str]
    partner_id: Optional[int]
    friend_id: Optional[int]
    is_active: bool
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)
