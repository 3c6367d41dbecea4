"""ClubManager - Import Schemas

CSV 导入结果与导入日志
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ImportLogEntry(BaseModel):
    row_number: int
    action: str
    email: Optional[str] = None
    error: Optional[str] = None


class ImportResultResponse(BaseModel):
    """导入汇总"""
    run_id: str
    created: int
    updated: int
    skipped: int
    total: int
    log: list[ImportLogEntry]


class ImportLogResponse(ImportLogEntry):
    """持久化的导入日志"""
    id: int
    run_id: str
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)
