"""ClubManager - User Routes

会员管理 API 路由（含 CSV 导入导出）
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import get_current_user, require_admin
from clubmanager.core.errors import ApiError, Conflict, PermissionDenied, UserNotFound
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.schedule_models import ScheduleAssignment
from clubmanager.database.token_models import LoginToken
from clubmanager.database.user_models import MemberStatus, User
from clubmanager.models.import_schemas import ImportResultResponse
from clubmanager.models.user_schemas import UserCreate, UserResponse, UserUpdate
from clubmanager.services.csv_service import CsvImportService, export_filename, export_users_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFound()
    return user


def _check_references(db: Session, *user_ids: Optional[int]) -> None:
    for user_id in user_ids:
        if user_id is not None and not db.query(User.id).filter(User.id == user_id).first():
            raise ApiError(f"关联用户不存在: {user_id}", code="INVALID_USER")


@router.get("", response_model=ApiResponse[list[UserResponse]])
def list_users(
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """会员列表"""
    query = db.query(User)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    users = query.order_by(User.last_name, User.first_name).all()
    return ok([UserResponse.model_validate(u) for u in users])


@router.get("/assignable", response_model=ApiResponse[list[UserResponse]])
def list_assignable_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """可参与排班的会员"""
    users = db.query(User).filter(
        User.status == MemberStatus.ASSIGNABLE,
        User.is_active.is_(True),
    ).order_by(User.last_name, User.first_name).all()
    return ok([UserResponse.model_validate(u) for u in users])


@router.get("/export/csv")
def export_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """导出会员 CSV（附件下载）"""
    content = export_users_csv(db)
    filename = export_filename()
    logger.info(f"User {current_user.id} exported {len(content)} bytes of member CSV")
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(content)),
        },
    )


@router.post("/import", response_model=ApiResponse[ImportResultResponse])
async def import_users(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """导入会员 CSV

    按邮箱 upsert；单行错误记录到日志并继续处理。
    """
    content = await file.read()
    logger.info(f"User {current_user.id} importing {file.filename} ({len(content)} bytes)")
    result = CsvImportService(db).import_bytes(content)
    return ok(ImportResultResponse.model_validate(result.to_dict()), "导入完成")


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """获取会员详情"""
    return ok(UserResponse.model_validate(_get_user_or_404(db, user_id)))


@router.post("", response_model=ApiResponse[UserResponse], status_code=201)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """创建会员"""
    if db.query(User).filter(User.email == user_data.email).first():
        raise Conflict("邮箱已存在", code="USER_EXISTS")
    _check_references(db, user_data.partner_id, user_data.friend_id)

    new_user = User(**user_data.model_dump(), is_active=True)
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    return ok(UserResponse.model_validate(new_user), "会员已创建")


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """更新会员"""
    user = _get_user_or_404(db, user_id)
    changes = user_data.model_dump(exclude_unset=True)

    if changes.get("email") and changes["email"] != user.email:
        if db.query(User).filter(User.email == changes["email"]).first():
            raise Conflict("邮箱已存在", code="USER_EXISTS")
    if user_id in (changes.get("partner_id"), changes.get("friend_id")):
        raise ApiError("不能关联自己", code="INVALID_USER")
    _check_references(db, changes.get("partner_id"), changes.get("friend_id"))

    for key, value in changes.items():
        if key in ("first_name", "email", "role", "status", "is_active") and value is None:
            continue
        setattr(user, key, value)

    db.commit()
    db.refresh(user)

    return ok(UserResponse.model_validate(user), "会员已更新")


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """删除会员"""
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise PermissionDenied("不能删除自己的账户")

    # 清除其他记录对该会员的引用
    db.query(User).filter(User.partner_id == user.id).update({User.partner_id: None}, synchronize_session=False)
    db.query(User).filter(User.friend_id == user.id).update({User.friend_id: None}, synchronize_session=False)
    db.query(ScheduleAssignment).filter(ScheduleAssignment.squarehead1_id == user.id).update(
        {ScheduleAssignment.squarehead1_id: None}, synchronize_session=False
    )
    db.query(ScheduleAssignment).filter(ScheduleAssignment.squarehead2_id == user.id).update(
        {ScheduleAssignment.squarehead2_id: None}, synchronize_session=False
    )
    # 登录令牌保留作审计，只解除关联
    db.query(LoginToken).filter(LoginToken.user_id == user.id).update(
        {LoginToken.user_id: None}, synchronize_session=False
    )

    db.delete(user)
    db.commit()

    return ok(message="会员已删除")
