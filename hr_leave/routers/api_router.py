from fastapi import APIRouter
from hr_leave.routers import leave_types, leave_balances, leave_requests, notifications

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave_types.router)
api_router.include_router(leave_balances.router)
api_router.include_router(leave_requests.router)
api_router.include_router(notifications.router)
