"""
Auth Routes - login and current-user lookup.
"""
from fastapi import APIRouter, Depends, Request

from auth import create_access_token, get_current_identity
from models import Identity, Token, UserOut
from service_modules.errors import ValidationError
from service_modules.user_service import UserService, get_user_service

router = APIRouter()


@router.post("/auth/login", response_model=Token)
async def login(request: Request, service: UserService = Depends(get_user_service)):
    """Exchange username/password (JSON or form body) for a bearer token."""
    content_type = request.headers.get("Content-Type", "")
    username = None
    password = None

    try:
        if "json" in content_type:
            body = await request.json()
            if isinstance(body, dict):
                username = body.get("username")
                password = body.get("password")
        else:
            form = await request.form()
            username = form.get("username")
            password = form.get("password")
    except ValueError:
        # Unparseable body falls through to the missing-credentials check
        pass

    if not username or not password:
        raise ValidationError("Missing credentials")
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError("username and password must be text")

    user = service.authenticate(username, password)
    return Token(access_token=create_access_token(user.id, user.role), user=user)


@router.get("/me", response_model=UserOut)
async def read_me(
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service)
):
    """Get the logged-in user."""
    return service.get_user(identity.id)
