# Import all routes
from .applications import router as applications_router
from .admin_review import router as admin_review_router
from .health import router as health_router

# All routers that should be included in main app
__all__ = [
    "applications_router",
    "admin_review_router",
    "health_router",
]
