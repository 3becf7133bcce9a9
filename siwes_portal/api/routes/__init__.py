"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from siwes_portal.api.routes.auth_routes import router as auth_router
from siwes_portal.api.routes.logbook_routes import router as logbook_router
from siwes_portal.api.routes.review_routes import router as review_router
from siwes_portal.api.routes.attendance_routes import router as attendance_router
from siwes_portal.api.routes.notification_routes import router as notification_router
from siwes_portal.api.routes.admin_routes import router as admin_router
from siwes_portal.api.routes.supervisor_routes import router as supervisor_router
from siwes_portal.api.routes.industry_supervisor_routes import router as industry_supervisor_router
from siwes_portal.api.routes.user_routes import router as user_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(logbook_router)
api_router.include_router(review_router)
api_router.include_router(attendance_router)
api_router.include_router(notification_router)
api_router.include_router(admin_router)
api_router.include_router(supervisor_router)
api_router.include_router(industry_supervisor_router)
api_router.include_router(user_router)
