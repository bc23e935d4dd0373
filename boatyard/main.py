"""
Main FastAPI Application for the Boatyard lifecycle engine.
"""
import logging

from fastapi import FastAPI

from boatyard import __version__
from boatyard.api.v1 import api_router as v1_router
from boatyard.config import get_config
from boatyard.models import init_db, ensure_default_settings

config = get_config()

logging.basicConfig(level=config.log_level, format=config.log_format)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=config.api_title,
    description="Project lifecycle, quoting, amendment and BOM management for boat building",
    version=__version__,
)

app.include_router(v1_router)


# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    init_db()
    ensure_default_settings()
    logger.info(f"Boatyard API started (config {config.path}, version {config.version})")


@app.get("/health")
def health_check():
    return {"status": "healthy", "version": __version__}
