"""ClubManager - Reminder Service

值班提醒邮件：按 email_template 配置渲染，reminder_days 决定提前几天提醒。
目前只提供测试发送，定时发送不在本服务内。
"""
from __future__ import annotations

import html
import logging
from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from clubmanager.core.config import settings
from clubmanager.core.errors import ApiError, NotFound
from clubmanager.database.schedule_models import ScheduleAssignment
from clubmanager.database.user_models import User
from clubmanager.services.mail_service import MailService
from clubmanager.services.schedule_service import club_nights, club_weekday, night_type
from clubmanager.services.setting_service import get_setting_value

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = "14,7,3,1"

DEFAULT_TEMPLATE = (
    "Hi {name},\n\n"
    "This is a reminder that you are squarehead at {club_name} on {dance_date} "
    "({club_night_type}), {days_until} days from now.\n"
    "Co-squarehead: {partner_name}\n\n"
    "Thank you for helping the club!"
)

class _KeepUnknown(dict):
    """未知占位符原样保留"""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_template(template: str, context: dict[str, Any]) -> str:
    """用 {placeholder} 语法渲染模板

    Raises:
        ApiError: 模板语法错误（如花括号不成对）
    """
    try:
        return template.format_map(_KeepUnknown(context))
    except (ValueError, IndexError, AttributeError) as e:
        raise ApiError(f"提醒邮件模板无效: {e}", code="INVALID_TEMPLATE") from e


def parse_reminder_days(value: Optional[str]) -> list[int]:
    """解析 "14,7,3,1"（也接受 JSON 数组写法），返回去重后的降序列表"""
    raw = (value or DEFAULT_REMINDER_DAYS).strip().strip("[]")
    days = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            day = int(part)
        except ValueError:
            raise ApiError(f"无效的提醒天数配置: {value}", code="INVALID_SETTING")
        if day < 0:
            raise ApiError(f"无效的提醒天数配置: {value}", code="INVALID_SETTING")
        days.add(day)
    return sorted(days, reverse=True)


class ReminderService:
    """值班提醒"""

    @staticmethod
    def build_context(
        db: Session,
        to: str,
        assignment: Optional[ScheduleAssignment] = None,
        today: Optional[date] = None,
    ) -> tuple[date, dict[str, Any]]:
        """组装模板变量，返回 (活动日期, 变量)

        没有指定值班安排时使用下一个活动日作为示例。
        """
        today = today or date.today()
        recipient = db.query(User).filter(User.email == to).first()

        if assignment is not None:
            dance_date = assignment.dance_date
            kind = assignment.club_night_type
            ids = [i for i in (assignment.squarehead1_id, assignment.squarehead2_id) if i is not None]
            others = db.query(User).filter(User.id.in_(ids)).order_by(User.id).all() if ids else []
            if recipient is not None:
                others = [u for u in others if u.id != recipient.id]
            partner_name = ", ".join(u.full_name for u in others) or "-"
        else:
            dance_date = club_nights(today, today + timedelta(days=6), club_weekday(db))[0]
            kind = night_type(dance_date).value
            partner_name = "-"

        return dance_date, {
            "name": recipient.full_name if recipient else "Member",
            "club_name": get_setting_value(db, "club_name", settings.CLUB_NAME),
            "dance_date": dance_date.strftime("%A, %B %d, %Y"),
            "club_night_type": kind,
            "days_until": (dance_date - today).days,
            "partner_name": partner_name,
        }

    @staticmethod
    def build_email(db: Session, context: dict[str, Any]) -> tuple[str, str, str]:
        """渲染提醒邮件，返回 (subject, html, text)"""
        template = get_setting_value(db, "email_template") or DEFAULT_TEMPLATE
        text = render_template(template, context)
        subject = f"{context['club_name']} - Squarehead reminder: {context['dance_date']}"
        paragraphs = "".join(
            f"<p>{html.escape(block).replace(chr(10), '<br>')}</p>"
            for block in text.split("\n\n")
            if block.strip()
        )
        body = f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <h2>{html.escape(context['club_name'])}</h2>
            {paragraphs}
        </body>
        </html>
        """
        return subject, body, text

    @staticmethod
    def send_test_reminder(
        db: Session,
        mailer: MailService,
        to: str,
        assignment_id: Optional[int] = None,
        today: Optional[date] = None,
    ) -> dict[str, Any]:
        """按当前模板发送一封提醒测试邮件

        Raises:
            NotFound: 指定的值班安排不存在
            MailDeliveryError: 发送失败
        """
        assignment = None
        if assignment_id is not None:
            assignment = db.query(ScheduleAssignment).filter(ScheduleAssignment.id == assignment_id).first()
            if not assignment:
                raise NotFound("值班安排不存在")

        days = parse_reminder_days(get_setting_value(db, "reminder_days", DEFAULT_REMINDER_DAYS))
        dance_date, context = ReminderService.build_context(db, to, assignment, today)
        subject, body, text = ReminderService.build_email(db, context)
        mailer.send(to, subject, body, text)
        logger.info(f"Test reminder for {dance_date} sent to {to}")

        return {
            "to": to,
            "subject": subject,
            "dance_date": dance_date,
            "reminder_days": days,
            "reminder_dates": [dance_date - timedelta(days=d) for d in days],
        }
