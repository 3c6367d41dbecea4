"""ClubManager - Setting Service

俱乐部配置读写
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from clubmanager.database.setting_models import ClubSetting, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


def _to_text(key: str, value: Any) -> Optional[str]:
    """配置值统一按文本存储"""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (dict, list)) and key != "club_logo_data":
        return json.dumps(value, ensure_ascii=False)
    # logo 数据必须是字符串
    return str(value)


def get_all_settings(db: Session) -> dict[str, Optional[str]]:
    """获取全部配置"""
    rows = db.query(ClubSetting).order_by(ClubSetting.key).all()
    return {row.key: row.value for row in rows}


def get_setting(db: Session, key: str) -> Optional[ClubSetting]:
    return db.query(ClubSetting).filter(ClubSetting.key == key).first()


def get_setting_value(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    """获取配置值，缺失或为空时返回默认值"""
    setting = get_setting(db, key)
    if setting is None or setting.value in (None, ""):
        return default
    return setting.value


def set_setting(db: Session, key: str, value: Any, *, commit: bool = True) -> ClubSetting:
    """设置配置值（不存在则创建）"""
    setting = get_setting(db, key)
    if setting is None:
        setting = ClubSetting(key=key)
        db.add(setting)
    setting.value = _to_text(key, value)
    if commit:
        db.commit()
        db.refresh(setting)
    return setting


def update_settings(db: Session, values: dict[str, Any]) -> dict[str, Optional[str]]:
    """批量更新配置（单事务）"""
    for key, value in values.items():
        set_setting(db, key, value, commit=False)
    db.commit()
    logger.info(f"Settings updated: {sorted(values)}")
    return get_all_settings(db)


def seed_default_settings(db: Session) -> int:
    """写入缺失的默认配置，返回新增数量"""
    existing = {key for (key,) in db.query(ClubSetting.key).all()}
    added = 0
    for key, (value, description) in DEFAULT_SETTINGS.items():
        if key in existing:
            continue
        db.add(ClubSetting(key=key, value=value, description=description))
        added += 1
    if added:
        db.commit()
        logger.info(f"Seeded {added} default settings")
    return added
