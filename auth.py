from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from models import Identity
from models_orm import UserORM
from service_modules.errors import Unauthenticated, Forbidden
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

import bcrypt
import logging

logger = logging.getLogger("valhalla")

# bcrypt refuses longer input
MAX_PASSWORD_BYTES = 72

def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES

def verify_password(plain_password, hashed_password):
    if password_too_long(plain_password):
        return False
    # bcrypt requires bytes for both
    pwd_bytes = plain_password.encode('utf-8')
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)

def get_password_hash(password):
    # bcrypt requires bytes, returns bytes. We store as string.
    pwd_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode('utf-8')

def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None):
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

async def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    """Resolve the bearer token to the caller's {id, role}."""
    token = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):]

    if not token:
        logger.debug("AUTH: No bearer token")
        raise Unauthenticated("Token required")

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            logger.debug("AUTH: Token missing 'sub'")
            raise Unauthenticated("Invalid token")
    except JWTError as e:
        logger.debug(f"AUTH: JWT validation error: {e}")
        raise Unauthenticated("Invalid token")

    # Role comes from the store, not the token, so demotions apply immediately
    user = db.query(UserORM).filter(UserORM.id == user_id).first()
    if user is None:
        logger.debug(f"AUTH: User {user_id} not found")
        raise Unauthenticated("Unknown user")

    return Identity(id=user.id, role=user.role)

async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Admin only")
    return identity
