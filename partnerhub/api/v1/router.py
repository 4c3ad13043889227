from fastapi import APIRouter

from partnerhub.api.v1.dashboard import router as dashboard_router
from partnerhub.api.v1.reports import router as reports_router

v1_router = APIRouter()

v1_router.include_router(dashboard_router)
v1_router.include_router(reports_router)
