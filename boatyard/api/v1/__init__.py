"""
API v1 - REST endpoints over the project lifecycle services.

- Project endpoints (create, read, transitions, archive)
- Configuration endpoints (item edits while editable)
- Quote endpoints (draft, send, accept, reject, new version)
- Amendment endpoints (change control after order confirmation)
- BOM endpoints (snapshots, CSV export, margin)
- Settings endpoints (cost estimation defaults)
"""
from fastapi import APIRouter

from .projects import router as projects_router
from .configuration import router as configuration_router
from .quotes import router as quotes_router
from .amendments import router as amendments_router
from .bom import router as bom_router
from .settings import router as settings_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(configuration_router, prefix="/projects", tags=["Configuration"])
api_router.include_router(quotes_router, prefix="/projects", tags=["Quotes"])
api_router.include_router(amendments_router, prefix="/projects", tags=["Amendments"])
api_router.include_router(bom_router, prefix="/projects", tags=["BOM"])
api_router.include_router(settings_router, prefix="/settings", tags=["Settings"])
