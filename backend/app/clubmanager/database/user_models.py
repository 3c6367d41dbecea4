"""ClubManager - User Models

会员数据模型
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Enum as SQLEnum
import enum

from clubmanager.database.config import Base


class UserRole(str, enum.Enum):
    """用户角色"""
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, enum.Enum):
    """会员状态（决定是否参与排班）"""
    ASSIGNABLE = "assignable"
    EXEMPT = "exempt"
    BOOSTER = "booster"
    LOA = "loa"


class User(Base):
    """会员模型"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    role = Column(SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e]), default=UserRole.MEMBER, nullable=False)
    status = Column(SQLEnum(MemberStatus, values_callable=lambda e: [m.value for m in e]), default=MemberStatus.ASSIGNABLE, nullable=False)
    birthday = Column(String(5), nullable=True)  # MM/DD
    partner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    friend_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
