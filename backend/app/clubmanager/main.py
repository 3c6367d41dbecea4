from fastapi import FastAPI

from clubmanager.api.v1.routes import router as api_router
from clubmanager.core.config import settings
from clubmanager.core.errors import register_exception_handlers

app = FastAPI(title="ClubManager API", version=settings.APP_VERSION)
register_exception_handlers(app)
app.include_router(api_router)


@app.get("/healthz", include_in_schema=False)
def healthz():
    return {"ok": True}
