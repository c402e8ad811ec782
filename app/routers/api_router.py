from fastapi import APIRouter
from app.routers import auth, leave, users, departments, dashboard, profile

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(dashboard.router, tags=["Dashboard"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(departments.router, tags=["Departments"])
api_router.include_router(profile.router, tags=["Profile"])
