"""ClubManager - Setting Routes

俱乐部配置 API
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import get_current_user, require_admin
from clubmanager.core.errors import NotFound
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.user_models import User
from clubmanager.services import setting_service

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingValue(BaseModel):
    key: str
    value: Optional[str] = None


class SettingUpdate(BaseModel):
    value: Any = None


@router.get("", response_model=ApiResponse[dict[str, Optional[str]]])
def list_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """获取全部配置"""
    return ok(setting_service.get_all_settings(db))


@router.get("/{key}", response_model=ApiResponse[SettingValue])
def get_setting(
    key: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """获取单个配置"""
    setting = setting_service.get_setting(db, key)
    if not setting:
        raise NotFound(f"配置不存在: {key}")
    return ok(SettingValue(key=setting.key, value=setting.value))


@router.put("", response_model=ApiResponse[dict[str, Optional[str]]])
def update_settings(
    values: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """批量更新配置"""
    return ok(setting_service.update_settings(db, values), "配置已更新")


@router.put("/{key}", response_model=ApiResponse[SettingValue])
def update_setting(
    key: str,
    data: SettingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """更新单个配置"""
    setting = setting_service.set_setting(db, key, data.value)
    return ok(SettingValue(key=setting.key, value=setting.value), "配置已更新")
