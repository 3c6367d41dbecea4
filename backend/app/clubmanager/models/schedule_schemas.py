"""ClubManager - Schedule Schemas"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clubmanager.database.schedule_models import ClubNightType


class ScheduleCreate(BaseModel):
    """创建下一期排班"""
    name: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date


class AssignmentUpdate(BaseModel):
    """更新值班安排"""
    squarehead1_id: Optional[int] = None
    squarehead2_id: Optional[int] = None
    club_night_type: Optional[ClubNightType] = None
    notes: Optional[str] = None


class AssignmentResponse(BaseModel):
    id: int
    schedule_id: int
    dance_date: date
    club_night_type: str
    squarehead1_id: Optional[int]
    squarehead2_id: Optional[int]
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class ScheduleResponse(BaseModel):
    id: int
    name: str
    schedule_type: str
    start_date: date
    end_date: date
    is_active: bool
    assignments: list[AssignmentResponse] = []

    model_config = ConfigDict(from_attributes=True)
