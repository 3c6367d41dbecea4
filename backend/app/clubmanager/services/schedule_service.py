"""ClubManager - Schedule Service

排班服务 - 生成下一期排班、调整值班人、切换当前排班
"""
from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from clubmanager.core.errors import ApiError, NotFound
from clubmanager.database.schedule_models import (
    ClubNightType,
    Schedule,
    ScheduleAssignment,
    ScheduleType,
)
from clubmanager.database.user_models import User
from clubmanager.services.setting_service import get_setting_value

logger = logging.getLogger(__name__)

WEEKDAYS = {name.lower(): index for index, name in enumerate(calendar.day_name)}


def club_weekday(db: Session) -> int:
    """读取活动日配置（默认周三）"""
    value = (get_setting_value(db, "club_day_of_week", "Wednesday") or "").strip().lower()
    if value not in WEEKDAYS:
        raise ApiError(f"无效的活动日配置: {value}", code="INVALID_SETTING")
    return WEEKDAYS[value]


def club_nights(start: date, end: date, weekday: int) -> list[date]:
    """区间内所有活动日（含首尾）"""
    first = start + timedelta(days=(weekday - start.weekday()) % 7)
    nights = []
    current = first
    while current <= end:
        nights.append(current)
        current += timedelta(days=7)
    return nights


def night_type(day: date) -> ClubNightType:
    """当月第五个同星期日为特殊活动"""
    return ClubNightType.FIFTH_WED if day.day > 28 else ClubNightType.NORMAL


class ScheduleService:
    """排班服务"""

    @staticmethod
    def get_schedule(db: Session, schedule_type: ScheduleType) -> Optional[Schedule]:
        return db.query(Schedule).filter(
            Schedule.schedule_type == schedule_type.value,
            Schedule.is_active.is_(True),
        ).order_by(Schedule.id.desc()).first()

    @staticmethod
    def create_next_schedule(db: Session, name: str, start_date: date, end_date: date) -> Schedule:
        """创建下一期排班，每个活动日一条空的值班安排

        已存在的下一期排班会被替换。
        """
        if end_date < start_date:
            raise ApiError("结束日期不能早于开始日期", code="INVALID_DATE_RANGE")

        nights = club_nights(start_date, end_date, club_weekday(db))
        if not nights:
            raise ApiError("日期范围内没有活动日", code="INVALID_DATE_RANGE")

        existing = db.query(Schedule).filter(Schedule.schedule_type == ScheduleType.NEXT.value).all()
        for old in existing:
            db.delete(old)

        schedule = Schedule(
            name=name,
            schedule_type=ScheduleType.NEXT.value,
            start_date=start_date,
            end_date=end_date,
            is_active=True,
        )
        schedule.assignments = [
            ScheduleAssignment(dance_date=night, club_night_type=night_type(night).value)
            for night in nights
        ]
        db.add(schedule)
        db.commit()
        db.refresh(schedule)

        logger.info(f"Next schedule {schedule.id} created with {len(nights)} club nights")
        return schedule

    @staticmethod
    def update_assignment(db: Session, assignment_id: int, changes: dict) -> ScheduleAssignment:
        """更新值班安排（只更新传入的字段）"""
        assignment = db.query(ScheduleAssignment).filter(ScheduleAssignment.id == assignment_id).first()
        if not assignment:
            raise NotFound("值班安排不存在")

        for key in ("squarehead1_id", "squarehead2_id"):
            user_id = changes.get(key)
            if user_id is not None and not db.query(User.id).filter(User.id == user_id).first():
                raise ApiError(f"用户不存在: {user_id}", code="INVALID_USER")

        if "club_night_type" in changes and changes["club_night_type"] is not None:
            changes["club_night_type"] = ClubNightType(changes["club_night_type"]).value

        for key, value in changes.items():
            setattr(assignment, key, value)

        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def promote_next_schedule(db: Session) -> Schedule:
        """下一期排班转为当前排班，原当前排班归档"""
        next_schedule = ScheduleService.get_schedule(db, ScheduleType.NEXT)
        if not next_schedule:
            raise NotFound("没有可切换的下一期排班")

        for current in db.query(Schedule).filter(Schedule.schedule_type == ScheduleType.CURRENT.value).all():
            current.schedule_type = ScheduleType.ARCHIVED.value
            current.is_active = False

        next_schedule.schedule_type = ScheduleType.CURRENT.value
        db.commit()
        db.refresh(next_schedule)

        logger.info(f"Schedule {next_schedule.id} promoted to current")
        return next_schedule
