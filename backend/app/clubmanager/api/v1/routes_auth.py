"""ClubManager - 认证相关路由

免密登录：发送登录链接、校验令牌换取会话凭证
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import get_current_user
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.user_models import User
from clubmanager.models.auth_schemas import (
    CredentialResponse,
    SendLoginLinkRequest,
    SendLoginLinkResponse,
    ValidateTokenRequest,
)
from clubmanager.models.user_schemas import UserResponse
from clubmanager.services.auth_service import AuthService
from clubmanager.services.mail_service import MailService, get_mail_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/send-login-link", response_model=ApiResponse[SendLoginLinkResponse])
def send_login_link(
    data: SendLoginLinkRequest,
    db: Session = Depends(get_db),
    mailer: MailService = Depends(get_mail_service),
):
    """发送登录链接

    无论邮箱是否注册都返回相同结果。
    """
    AuthService.send_login_link(db, data.email, mailer)
    return ok(SendLoginLinkResponse(), "如果该邮箱已注册，登录链接已发送")


@router.post("/validate-token", response_model=ApiResponse[CredentialResponse])
def validate_token(data: ValidateTokenRequest, db: Session = Depends(get_db)):
    """校验一次性令牌，返回会话凭证"""
    result = AuthService.validate_login_token(db, data.token)
    return ok(CredentialResponse(
        credential=result["credential"],
        token_type=result["token_type"],
        expires_at=result["expires_at"],
        user=UserResponse.model_validate(result["user"]),
    ))


@router.get("/me", response_model=ApiResponse[UserResponse])
def me(current_user: User = Depends(get_current_user)):
    """当前登录用户"""
    return ok(UserResponse.model_validate(current_user))
