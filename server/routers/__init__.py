# API routes of the bug tracker

from fastapi import APIRouter

from server.routers.bugs import router as bugs_router
from server.routers.ci_report import router as ci_report_router
from server.routers.projects import router as projects_router

router = APIRouter()
router.include_router(ci_report_router, tags=["ci"])
router.include_router(projects_router, prefix="/projects", tags=["projects"])
router.include_router(bugs_router, prefix="/bugs", tags=["bugs"])
