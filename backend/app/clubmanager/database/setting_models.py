"""ClubManager - Club Setting Models

俱乐部配置（键值对）
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text

from clubmanager.database.config import Base


class ClubSetting(Base):
    """俱乐部配置"""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)
    description = Column(String(500), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))


# 预定义配置键及默认值
DEFAULT_SETTINGS = {
    "club_name": ("Square Dance Club", "俱乐部名称"),
    "club_subtitle": ("", "副标题"),
    "club_address": ("", "俱乐部地址"),
    "club_color": ("#EA3323", "主题色"),
    "club_day_of_week": ("Wednesday", "每周活动日"),
    "reminder_days": ("14,7,3,1", "排班提醒提前天数"),
    "club_logo_data": ("", "Logo（base64）"),
    "email_template": ("", "提醒邮件模板"),
}
