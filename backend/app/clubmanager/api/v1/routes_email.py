"""ClubManager - Email Routes

邮件配置测试、提醒邮件模板测试
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import require_admin
from clubmanager.core.config import settings
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.user_models import User
from clubmanager.services.mail_service import MailService, get_mail_service
from clubmanager.services.reminder_service import ReminderService
from clubmanager.services.setting_service import get_setting_value

router = APIRouter(prefix="/email", tags=["email"])


class SmtpTestRequest(BaseModel):
    to: EmailStr


@router.post("/test-smtp", response_model=ApiResponse[None])
def test_smtp(
    data: SmtpTestRequest,
    db: Session = Depends(get_db),
    mailer: MailService = Depends(get_mail_service),
    current_user: User = Depends(require_admin),
):
    """发送测试邮件"""
    club_name = get_setting_value(db, "club_name", settings.CLUB_NAME)
    mailer.send(
        data.to,
        f"{club_name} - 测试邮件",
        f"<p>{club_name} 邮件配置正常。</p>",
        f"{club_name} 邮件配置正常。",
    )
    return ok(message=f"测试邮件已发送至 {data.to}")


class ReminderTestRequest(BaseModel):
    to: EmailStr
    assignment_id: Optional[int] = None


class ReminderTestResponse(BaseModel):
    to: str
    subject: str
    dance_date: date
    reminder_days: list[int]
    reminder_dates: list[date]


@router.post("/test-reminder", response_model=ApiResponse[ReminderTestResponse])
def test_reminder(
    data: ReminderTestRequest,
    db: Session = Depends(get_db),
    mailer: MailService = Depends(get_mail_service),
    current_user: User = Depends(require_admin),
):
    """按当前提醒模板发送测试邮件

    指定 assignment_id 时使用该值班安排的数据，否则以下一个活动日为例。
    """
    result = ReminderService.send_test_reminder(db, mailer, str(data.to).lower(), data.assignment_id)
    return ok(ReminderTestResponse(**result), message=f"提醒测试邮件已发送至 {data.to}")
