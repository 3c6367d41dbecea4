from fastapi import APIRouter

from clubmanager.api.v1.routes_system import router as system_router
from clubmanager.api.v1.routes_auth import router as auth_router
from clubmanager.api.v1.routes_users import router as users_router
from clubmanager.api.v1.routes_settings import router as settings_router
from clubmanager.api.v1.routes_schedules import router as schedules_router
from clubmanager.api.v1.routes_maintenance import router as maintenance_router
from clubmanager.api.v1.routes_email import router as email_router

# 统一入口：所有接口都从 /api 开始
router = APIRouter(prefix="/api")

router.include_router(system_router)
router.include_router(auth_router)
router.include_router(users_router)
router.include_router(settings_router)
router.include_router(schedules_router)
router.include_router(maintenance_router)
router.include_router(email_router)
