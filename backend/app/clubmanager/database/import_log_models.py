"""ClubManager - Import Log Models

CSV 导入逐行结果日志
"""
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Text

from clubmanager.database.config import Base


class ImportAction(str, Enum):
    """单行处理结果"""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


class ImportLog(Base):
    """导入日志（每行一条）"""
    __tablename__ = "import_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(32), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    action = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    def __repr__(self) -> str:
        return f"<ImportLog run={self.run_id} row={self.row_number} {self.action}>"
