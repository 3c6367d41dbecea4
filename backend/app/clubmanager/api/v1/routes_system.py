"""ClubManager - System Routes

健康检查与状态
"""
import logging
import platform
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clubmanager.core.config import settings
from clubmanager.core.responses import ok
from clubmanager.database.config import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


def check_database(db: Session) -> dict:
    """数据库连通性检查"""
    try:
        db.execute(text("SELECT 1"))
        return {"connected": True, "dialect": db.get_bind().dialect.name}
    except SQLAlchemyError as e:
        logger.error(f"Database check failed: {e}")
        return {"connected": False, "error": str(e)}


@router.get("/test")
def api_test():
    return ok({
        "message": "Backend API is working!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": platform.python_version(),
    })


@router.get("/health")
def health():
    return ok({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
    })


@router.get("/db-test")
def db_test(db: Session = Depends(get_db)):
    return ok(check_database(db))


@router.get("/status")
def api_status(request: Request, db: Session = Depends(get_db)):
    """服务状态与接口列表"""
    endpoints = sorted(
        f"{method} {route.path}"
        for route in request.app.routes
        if route.path.startswith("/api")
        for method in (getattr(route, "methods", None) or [])
        if method != "HEAD"
    )
    return ok({
        "status": "operational",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": check_database(db),
        "endpoints": endpoints,
    })
