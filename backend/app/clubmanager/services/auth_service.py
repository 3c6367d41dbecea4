"""ClubManager - Auth Service

免密登录服务：一次性令牌签发、校验与会话凭证
"""
import hashlib
import logging
import secrets
import uuid as uuid_module
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from urllib.parse import urlencode

import jwt
from jwt.exceptions import InvalidTokenError
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from clubmanager.core.config import settings
from clubmanager.core.errors import (
    TokenAlreadyUsed,
    TokenExpired,
    TokenNotFound,
    UserNotFound,
)
from clubmanager.database.token_models import LoginToken
from clubmanager.database.user_models import User, UserRole, MemberStatus
from clubmanager.services.mail_service import MailService, build_login_email
from clubmanager.services.setting_service import get_setting_value

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite 读回的时间不带时区，统一按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """认证服务"""

    @staticmethod
    def _hash_token(token: str) -> str:
        """Token 哈希（带 pepper 防止离线碰撞）"""
        salted = token + settings.TOKEN_PEPPER
        return hashlib.sha256(salted.encode()).hexdigest()

    @staticmethod
    def build_login_link(token: str) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}/login?{urlencode({'token': token})}"

    # ========== 一次性登录令牌 ==========

    @staticmethod
    def issue_login_token(db: Session, user: User) -> str:
        """为用户生成并保存一次性令牌，返回原始令牌"""
        now = datetime.now(timezone.utc)
        raw_token = secrets.token_urlsafe(32)
        db_token = LoginToken(
            token_hash=AuthService._hash_token(raw_token),
            email=user.email,
            user_id=user.id,
            created_at=now,
            expires_at=now + timedelta(minutes=settings.LOGIN_TOKEN_EXPIRE_MINUTES),
        )
        db.add(db_token)
        db.commit()
        return raw_token

    @staticmethod
    def send_login_link(db: Session, email: str, mailer: MailService) -> Optional[str]:
        """发送登录链接

        未注册或已停用的邮箱同样返回成功（不泄露账号是否存在），
        但不生成令牌也不发邮件。

        Returns:
            原始令牌；邮箱未注册时返回 None

        Raises:
            MailDeliveryError: 邮件发送失败（不重试）
        """
        email = normalize_email(email)
        user = db.query(User).filter(User.email == email).first()
        if not user or not user.is_active:
            logger.warning("Login link requested for unknown or inactive email")
            return None

        raw_token = AuthService.issue_login_token(db, user)
        club_name = get_setting_value(db, "club_name", settings.CLUB_NAME)
        subject, html, text = build_login_email(
            club_name,
            AuthService.build_login_link(raw_token),
            settings.LOGIN_TOKEN_EXPIRE_MINUTES,
        )
        mailer.send(user.email, subject, html, text)
        logger.info(f"Login link issued for user {user.id}")
        return raw_token

    @staticmethod
    def _consume_token(db: Session, token_id: int, now: datetime) -> bool:
        """条件更新：仅当 consumed_at 仍为空时置位

        两个并发校验只有一个能更新到行。不提交，由调用方提交。
        """
        updated = db.query(LoginToken).filter(
            LoginToken.id == token_id,
            LoginToken.consumed_at.is_(None),
        ).update({LoginToken.consumed_at: now}, synchronize_session=False)
        return updated == 1

    @staticmethod
    def validate_login_token(db: Session, token: str) -> Dict[str, Any]:
        """校验一次性令牌并换取会话凭证

        Returns:
            {"credential", "token_type", "expires_at", "user"}

        Raises:
            TokenNotFound / TokenExpired / TokenAlreadyUsed / UserNotFound
        """
        db_token = db.query(LoginToken).filter(
            LoginToken.token_hash == AuthService._hash_token(token)
        ).first()
        if not db_token:
            raise TokenNotFound()
        if db_token.consumed_at is not None:
            raise TokenAlreadyUsed()

        now = datetime.now(timezone.utc)
        if now >= _as_utc(db_token.expires_at):
            raise TokenExpired()

        try:
            if not AuthService._consume_token(db, db_token.id, now):
                raise TokenAlreadyUsed()

            user = db.query(User).filter(User.id == db_token.user_id).first()
            if not user or not user.is_active:
                raise UserNotFound()

            credential, expires_at = AuthService.create_credential(user)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Login token consumed by user {user.id}")
        return {
            "credential": credential,
            "token_type": "bearer",
            "expires_at": expires_at,
            "user": user,
        }

    @staticmethod
    def cleanup_login_tokens(db: Session, retention_days: int = 7) -> int:
        """清理过期或已使用的登录令牌

        清理规则：过期时间或使用时间早于保留期截止点。

        Returns:
            删除的令牌数量
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)

        deleted = db.query(LoginToken).filter(
            or_(
                LoginToken.expires_at < cutoff,
                and_(
                    LoginToken.consumed_at.isnot(None),
                    LoginToken.consumed_at < cutoff,
                ),
            )
        ).delete(synchronize_session=False)

        db.commit()
        logger.info(f"Cleaned up {deleted} login tokens")
        return deleted

    # ========== 会话凭证（JWT） ==========

    @staticmethod
    def create_credential(user: User) -> tuple[str, datetime]:
        """签发会话凭证

        Returns:
            (JWT 字符串, 过期时间)
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(hours=settings.JWT_EXPIRE_HOURS)

        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value if hasattr(user.role, "value") else str(user.role),
            "exp": expires_at,
            "iat": now,
            "jti": str(uuid_module.uuid4()),
        }

        token = jwt.encode(
            payload,
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )
        return token, expires_at

    @staticmethod
    def decode_credential(credential: str) -> Optional[Dict[str, Any]]:
        """解码并验证 JWT，失败返回 None"""
        try:
            return jwt.decode(
                credential,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
        except InvalidTokenError:
            return None

    @staticmethod
    def verify_credential(db: Session, credential: str) -> Optional[User]:
        """验证会话凭证并返回用户（无状态，不查令牌表）"""
        payload = AuthService.decode_credential(credential)
        if not payload:
            return None

        try:
            user_id = int(payload.get("sub", ""))
        except ValueError:
            return None

        user = db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            return None
        return user

    @staticmethod
    def create_admin(db: Session, email: str, first_name: str = "Admin", last_name: Optional[str] = None) -> User:
        """创建管理员；邮箱已存在时提升为管理员"""
        email = normalize_email(email)
        user = db.query(User).filter(User.email == email).first()
        if user:
            if user.role != UserRole.ADMIN:
                user.role = UserRole.ADMIN
                db.commit()
                db.refresh(user)
            return user

        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=UserRole.ADMIN,
            status=MemberStatus.EXEMPT,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Admin user created: {user.id}")
        return user
