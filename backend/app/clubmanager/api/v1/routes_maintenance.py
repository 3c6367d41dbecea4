"""ClubManager - Maintenance Routes

维护接口：导入日志、登录令牌清理
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import require_admin
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.import_log_models import ImportLog
from clubmanager.database.user_models import User
from clubmanager.models.import_schemas import ImportLogResponse
from clubmanager.services.auth_service import AuthService

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


class DeletedCount(BaseModel):
    deleted: int


@router.get("/import-logs", response_model=ApiResponse[list[ImportLogResponse]])
def get_import_logs(
    limit: int = Query(500, ge=1, le=5000),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """导入日志（最新一次导入在前）"""
    logs = db.query(ImportLog).order_by(
        ImportLog.created_at.desc(),
        ImportLog.id.desc(),
    ).limit(limit).all()
    return ok([ImportLogResponse.model_validate(log) for log in logs])


@router.post("/clear-import-logs", response_model=ApiResponse[DeletedCount])
def clear_import_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """清空导入日志"""
    deleted = db.query(ImportLog).delete(synchronize_session=False)
    db.commit()
    return ok(DeletedCount(deleted=deleted), "导入日志已清空")


@router.post("/cleanup-tokens", response_model=ApiResponse[DeletedCount])
def cleanup_tokens(
    retention_days: int = Query(7, ge=0, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """清理过期 / 已使用的登录令牌"""
    return ok(DeletedCount(deleted=AuthService.cleanup_login_tokens(db, retention_days)))
