"""
Routes package - organized API routes.

Import the combined router for use in main.py.
"""
from fastapi import APIRouter

from .auth_routes import router as auth_router
from .user_routes import router as user_router
from .client_routes import router as client_router

# Combined router that includes all sub-routers
combined_router = APIRouter()
combined_router.include_router(auth_router, tags=["auth"])
combined_router.include_router(user_router, tags=["users"])
combined_router.include_router(client_router, tags=["clients"])

__all__ = ['combined_router', 'auth_router', 'user_router', 'client_router']
