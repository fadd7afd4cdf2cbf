"""
User Service - identity store: login accounts and their roles.
"""
import logging
import uuid
from typing import List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from auth import MAX_PASSWORD_BYTES, get_password_hash, password_too_long, verify_password
from database import get_session_factory
from models import ADMIN, MEMBER, ROLES, Identity, UserOut
from models_orm import UserORM
from .errors import Forbidden, InternalError, NotFound, Unauthenticated, UsernameTaken, ValidationError

logger = logging.getLogger("valhalla")


class UserService:
    """Service for user accounts."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def authenticate(self, username: str, password: str) -> UserOut:
        """Check a username/password pair."""
        db = self.session_factory()
        try:
            user = db.query(UserORM).filter(UserORM.username == (username or "").strip()).first()
            if not user or not password or not verify_password(password, user.hashed_password):
                logger.info(f"Failed login for '{username}'")
                raise Unauthenticated("Invalid username or password")
            return UserOut.model_validate(user)
        finally:
            db.close()

    def get_user(self, user_id: str) -> UserOut:
        db = self.session_factory()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise NotFound("User not found")
            return UserOut.model_validate(user)
        finally:
            db.close()

    def list_users(self, identity: Identity) -> List[UserOut]:
        """All accounts, by username (admin only)."""
        if not identity.is_admin:
            raise Forbidden("Admin only")
        db = self.session_factory()
        try:
            users = db.query(UserORM).order_by(UserORM.username.asc()).all()
            return [UserOut.model_validate(u) for u in users]
        finally:
            db.close()

    def create_user(self, identity: Identity, username: str, password: str, role: str = MEMBER) -> UserOut:
        """Create a login account (admin only)."""
        if not identity.is_admin:
            raise Forbidden("Admin only")

        username = (username or "").strip()
        role = (role or MEMBER).strip()
        if not username or not (password or "").strip():
            raise ValidationError("username and password are required")
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if role not in ROLES:
            raise ValidationError(f"Invalid role: {role}")

        db = self.session_factory()
        try:
            if db.query(UserORM).filter(UserORM.username == username).first():
                raise UsernameTaken(username)

            user = UserORM(
                id=str(uuid.uuid4()),
                username=username,
                hashed_password=get_password_hash(password),
                role=role
            )
            db.add(user)
            db.commit()
            db.refresh(user)

            logger.info(f"User {username} ({role}) created by {identity.id}")
            return UserOut.model_validate(user)

        except HTTPException:
            db.rollback()
            raise
        except IntegrityError:
            db.rollback()
            raise UsernameTaken(username)
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating user {username}: {e}", exc_info=True)
            raise InternalError("Failed to create user")
        finally:
            db.close()

    def ensure_admin(self, username: str, password: str) -> Optional[UserOut]:
        """
        Make sure a usable admin account exists.

        Creates the account with id "admin" on first run; afterwards refreshes
        its password and role so the configured credentials always work.
        """
        if not password:
            logger.warning("ADMIN_PASS is not set; skipping admin bootstrap")
            return None

        db = self.session_factory()
        try:
            existing = db.query(UserORM).filter(
                or_(UserORM.id == "admin", UserORM.username == username)
            ).first()

            if not existing:
                existing = UserORM(
                    id="admin",
                    username=username,
                    hashed_password=get_password_hash(password),
                    role=ADMIN
                )
                db.add(existing)
                logger.info(f"Admin account created: {username} (id=admin)")
            else:
                existing.hashed_password = get_password_hash(password)
                existing.role = ADMIN
                logger.info(f"Admin account refreshed: {existing.username} (id={existing.id})")

            db.commit()
            db.refresh(existing)
            return UserOut.model_validate(existing)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def get_user_service(session_factory=Depends(get_session_factory)) -> UserService:
    """Dependency injection helper."""
    return UserService(session_factory)
