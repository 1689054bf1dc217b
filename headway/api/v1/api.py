from fastapi import APIRouter
from headway.api.v1.routes.auth import router as auth_router
from headway.api.v1.routes.bookings import router as bookings_router
from headway.api.v1.routes.webhooks import router as webhooks_router
from headway.api.v1.routes.admin import router as admin_router
from headway.api.v1.routes.cron import router as cron_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router)
api_router.include_router(bookings_router)
api_router.include_router(webhooks_router)
api_router.include_router(admin_router)
api_router.include_router(cron_router)
