"""ClubManager - Schedule Routes

排班 API
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubmanager.api.deps.auth_deps import get_current_user, require_admin
from clubmanager.core.responses import ApiResponse, ok
from clubmanager.database.config import get_db
from clubmanager.database.schedule_models import ScheduleType
from clubmanager.database.user_models import User
from clubmanager.models.schedule_schemas import (
    AssignmentResponse,
    AssignmentUpdate,
    ScheduleCreate,
    ScheduleResponse,
)
from clubmanager.services.schedule_service import ScheduleService

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _schedule_or_none(schedule) -> Optional[ScheduleResponse]:
    return ScheduleResponse.model_validate(schedule) if schedule else None


@router.get("/current", response_model=ApiResponse[Optional[ScheduleResponse]])
def get_current_schedule(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """当前排班"""
    return ok(_schedule_or_none(ScheduleService.get_schedule(db, ScheduleType.CURRENT)))


@router.get("/next", response_model=ApiResponse[Optional[ScheduleResponse]])
def get_next_schedule(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """下一期排班"""
    return ok(_schedule_or_none(ScheduleService.get_schedule(db, ScheduleType.NEXT)))


@router.post("/next", response_model=ApiResponse[ScheduleResponse], status_code=201)
def create_next_schedule(
    data: ScheduleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """创建下一期排班"""
    schedule = ScheduleService.create_next_schedule(db, data.name, data.start_date, data.end_date)
    return ok(ScheduleResponse.model_validate(schedule), "排班已创建")


@router.put("/assignments/{assignment_id}", response_model=ApiResponse[AssignmentResponse])
def update_assignment(
    assignment_id: int,
    data: AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """更新值班安排"""
    assignment = ScheduleService.update_assignment(db, assignment_id, data.model_dump(exclude_unset=True))
    return ok(AssignmentResponse.model_validate(assignment), "值班安排已更新")


@router.post("/promote", response_model=ApiResponse[ScheduleResponse])
def promote_schedule(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """下一期排班转为当前排班"""
    return ok(ScheduleResponse.model_validate(ScheduleService.promote_next_schedule(db)), "排班已切换")
