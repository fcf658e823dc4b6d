"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: There is no router-level auth dependency. Page routes are gated
by the auth middleware (redirect to sign-in); API actions receive the
identity and answer 401 themselves. The webhook receiver authenticates
by signature instead of session.
"""

from fastapi import APIRouter

from welth.api.accounts import router as accounts_router
from welth.api.dashboard import pages_router
from welth.api.dashboard import router as dashboard_router
from welth.api.health import router as health_router
from welth.api.webhooks import router as webhooks_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(accounts_router, tags=["accounts"])
api_router.include_router(dashboard_router, tags=["dashboard"])
api_router.include_router(webhooks_router, tags=["webhooks"])

__all__ = ["api_router", "pages_router"]
