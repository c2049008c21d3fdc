"""
API Routes

FastAPI routers for Studiobase endpoints.
"""

from studiobase.routes.health import router as health_router
from studiobase.routes.releases import router as releases_router
from studiobase.routes.scripts import router as scripts_router
from studiobase.routes.photos import router as photos_router
from studiobase.routes.donations import router as donations_router
from studiobase.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "releases_router",
    "scripts_router",
    "photos_router",
    "donations_router",
    "webhooks_router",
]
