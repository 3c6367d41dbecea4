"""ClubManager - Login Token Models

一次性登录令牌存储模型
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index

from clubmanager.database.config import Base


class LoginToken(Base):
    """一次性登录令牌

    只保存令牌哈希，原始令牌仅出现在邮件链接中。
    consumed_at 为空且未过期时可用，校验成功后置位且不再清空。
    会员被删除时保留令牌记录，user_id 置空；只由维护清理删除。
    """
    __tablename__ = "login_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)  # SHA256 hash
    email = Column(String(255), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_login_tokens_hash_expires", "token_hash", "expires_at"),
    )
