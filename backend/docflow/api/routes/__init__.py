"""
API Routes Package

Modules:
- documents: Consolidation runs and document classification
- tasks: Duplicate merge and priority escalation
- health: Health check endpoint
- schemas: Shared Pydantic models (request/response schemas)

Usage:
    from docflow.api.routes import router
    app.include_router(router)
"""

from fastapi import APIRouter

from .documents import router as documents_router
from .tasks import router as tasks_router
from .health import router as health_router

# Each router already carries the /api prefix
router = APIRouter(tags=["docflow"])

router.include_router(documents_router)
router.include_router(tasks_router)
router.include_router(health_router)

__all__ = [
    "router",
    "documents_router",
    "tasks_router",
    "health_router",
]
