"""ClubManager - Schedule Models

排班数据模型
"""
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from clubmanager.database.config import Base


class ScheduleType(str, Enum):
    """排班类型"""
    CURRENT = "current"
    NEXT = "next"
    ARCHIVED = "archived"


class ClubNightType(str, Enum):
    """活动类型"""
    NORMAL = "NORMAL"
    FIFTH_WED = "FIFTH WED"


class Schedule(Base):
    """排班表"""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    schedule_type = Column(String(20), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    assignments = relationship(
        "ScheduleAssignment",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleAssignment.dance_date",
    )


class ScheduleAssignment(Base):
    """单次活动的值班安排"""
    __tablename__ = "schedule_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    dance_date = Column(Date, nullable=False)
    club_night_type = Column(String(20), default=ClubNightType.NORMAL.value, nullable=False)
    squarehead1_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    squarehead2_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    schedule = relationship("Schedule", back_populates="assignments")
