"""
Main API router
"""
from fastapi import APIRouter

from leave_engine.api.v1 import (
    health,
    leaves,
    balances,
    leave_types,
    holidays,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(balances.router, prefix="/balances", tags=["balances"])
api_router.include_router(leave_types.router, prefix="/leave-types", tags=["leave-types"])
api_router.include_router(holidays.router, prefix="/holidays", tags=["holidays"])
