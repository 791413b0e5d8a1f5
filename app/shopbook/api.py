from fastapi import APIRouter

from app.shopbook.core.config import settings
from app.shopbook.routers.health import router as health_router
from app.shopbook.routers.metrics import router as metrics_router
from app.shopbook.routers.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(reports_router, tags=["reports"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
