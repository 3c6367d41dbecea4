"""ClubManager - Mail Service

邮件发送服务（登录链接、测试邮件）
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from clubmanager.core.config import settings
from clubmanager.core.errors import MailDeliveryError

logger = logging.getLogger(__name__)


@dataclass
class MailConfig:
    """邮件配置"""
    enabled: bool = False
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    mail_from: str = "noreply@club.org"

    @classmethod
    def from_settings(cls) -> "MailConfig":
        return cls(
            enabled=settings.MAIL_ENABLED,
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_use_tls=settings.SMTP_USE_TLS,
            mail_from=settings.MAIL_FROM,
        )


class MailService:
    """SMTP 邮件服务

    未启用时只记录日志，不实际发送。
    发送失败抛出 MailDeliveryError，不自动重试。
    """

    def __init__(self, config: Optional[MailConfig] = None):
        self.config = config or MailConfig.from_settings()

    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        if not self.config.enabled:
            logger.info(f"Mail disabled, not sending '{subject}' to {to}")
            return

        if not self.config.smtp_host:
            raise MailDeliveryError("未配置 SMTP 服务器")

        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.mail_from
        msg["To"] = to
        msg["Subject"] = subject
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as server:
                if self.config.smtp_use_tls:
                    server.starttls()
                if self.config.smtp_user and self.config.smtp_password:
                    server.login(self.config.smtp_user, self.config.smtp_password)
                server.sendmail(self.config.mail_from, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"邮件发送失败: {e}")
            raise MailDeliveryError(f"邮件发送失败: {e}") from e

        logger.info(f"Mail '{subject}' sent to {to}")


def build_login_email(club_name: str, link: str, expire_minutes: int) -> tuple[str, str, str]:
    """构建登录邮件，返回 (subject, html, text)"""
    subject = f"{club_name} - 登录链接"
    text = (
        f"点击以下链接登录 {club_name}：\n{link}\n\n"
        f"链接 {expire_minutes} 分钟内有效，且只能使用一次。"
    )
    html = f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <h2>{club_name}</h2>
            <p>点击下方按钮登录：</p>
            <p><a href="{link}" style="padding: 10px 16px; background: #EA3323; color: #fff; text-decoration: none;">登录</a></p>
            <p style="color: #666;">链接 {expire_minutes} 分钟内有效，且只能使用一次。</p>
        </body>
        </html>
        """
    return subject, html, text


# 全局邮件服务实例
_mail_service: Optional[MailService] = None


def get_mail_service() -> MailService:
    """获取邮件服务实例（FastAPI 依赖）"""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service
