"""
Sync API v1 router.

Every entity family exposes the same pair of endpoints:
POST /<entity>/pull?lastPulledAt=<epoch-ms> and POST /<entity>/push.
"""

from fastapi import APIRouter

from . import labels, projects, tasks

router = APIRouter()

router.include_router(labels.router, prefix="/labels", tags=["Labels"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
