"""
API v1 router setup
Organized into: public (customer booking) and dashboard (business management) routes
"""
from fastapi import APIRouter

from booking_engine.api.v1.dashboard import appointments, calendar
from booking_engine.api.v1.public import booking

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES
# ============================================================================
api_v1_router.include_router(
    booking.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (authorization is enforced upstream)
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    calendar.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)
