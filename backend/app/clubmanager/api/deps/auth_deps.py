"""ClubManager - 认证依赖

提供 get_current_user 和管理员检查依赖
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from clubmanager.core.errors import InvalidCredential, PermissionDenied
from clubmanager.database.config import get_db
from clubmanager.database.user_models import User, UserRole
from clubmanager.services.auth_service import AuthService


def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    """从 Authorization header 解析当前用户

    Raises:
        InvalidCredential: 401 如果认证失败
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidCredential("未提供认证信息")

    credential = authorization.removeprefix("Bearer ").strip()
    if not credential:
        raise InvalidCredential("无效的认证信息")

    user = AuthService.verify_credential(db, credential)
    if not user:
        raise InvalidCredential()

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """要求管理员角色"""
    if current_user.role != UserRole.ADMIN:
        raise PermissionDenied("需要管理员权限")
    return current_user
