"""
User Routes - admin management of login accounts.
"""
from typing import List

from fastapi import APIRouter, Depends

from auth import require_admin
from models import Identity, UserCreate, UserOut
from service_modules.user_service import UserService, get_user_service

router = APIRouter()


@router.get("/users", response_model=List[UserOut])
async def list_users(
    service: UserService = Depends(get_user_service),
    identity: Identity = Depends(require_admin)
):
    """List all accounts (admin only)."""
    return service.list_users(identity)


@router.post("/users", response_model=UserOut)
async def create_user(
    user_data: UserCreate,
    service: UserService = Depends(get_user_service),
    identity: Identity = Depends(require_admin)
):
    """Create an account (admin only)."""
    return service.create_user(identity, user_data.username, user_data.password, user_data.role)
