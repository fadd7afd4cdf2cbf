"""
Assignment Service - links a client record to at most one user account.

Every change to clients.assigned_user_id goes through AssignmentService.apply,
which checks and writes inside the caller's transaction. The unique constraint
on the column catches the case where a concurrent transaction claims the same
user between the check and the write.
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from models import ClientRecord
from models_orm import ClientORM, UserORM
from .client_records import get_row, to_record
from .errors import AssignmentConflict, ConcurrentUpdate, UnknownUser, ValidationError, InternalError

logger = logging.getLogger("valhalla")


def normalize_user_ref(value) -> Optional[str]:
    """None, "" and blank strings all mean unassigned."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("assigned_user_id must be a string or null")
    return value.strip() or None


class AssignmentService:
    """Service for managing the client <-> user assignment."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def apply(self, db, row: ClientORM, user_id: Optional[str]) -> None:
        """Assign (or clear) the user of a locked client row without committing."""
        if user_id is None:
            if row.assigned_user_id is not None:
                logger.info(f"Client {row.id} unassigned from user {row.assigned_user_id}")
            row.assigned_user_id = None
            return

        if row.assigned_user_id == user_id:
            return

        user = db.query(UserORM).filter(UserORM.id == user_id).first()
        if not user:
            raise UnknownUser(user_id)

        taken = db.query(ClientORM).filter(
            ClientORM.assigned_user_id == user_id,
            ClientORM.id != row.id
        ).with_for_update().first()

        if taken:
            logger.warning(f"User {user_id} already assigned to client {taken.id}; refused for client {row.id}")
            raise AssignmentConflict(taken.name)

        row.assigned_user_id = user_id
        try:
            db.flush()
        except IntegrityError:
            # Lost the race: someone committed the same user after our check
            db.rollback()
            holder = db.query(ClientORM).filter(ClientORM.assigned_user_id == user_id).first()
            logger.warning(f"Concurrent assignment of user {user_id} detected for client {row.id}")
            raise AssignmentConflict(holder.name if holder else "another client")

        logger.info(f"Client {row.id} assigned to user {user_id}")

    def assign(self, client_id: int, user_id) -> ClientRecord:
        """Assign a user to a client, or clear the assignment when user_id is empty."""
        user_id = normalize_user_ref(user_id)
        db = self.session_factory()
        try:
            row = get_row(db, client_id, for_update=True)
            self.apply(db, row, user_id)
            db.commit()
            db.refresh(row)
            return to_record(row)
        except HTTPException:
            db.rollback()
            raise
        except IntegrityError:
            db.rollback()
            raise AssignmentConflict("another client")
        except StaleDataError:
            db.rollback()
            logger.warning(f"Client {client_id} changed during assignment; rejected")
            raise ConcurrentUpdate()
        except Exception as e:
            db.rollback()
            logger.error(f"Error assigning user to client {client_id}: {e}", exc_info=True)
            raise InternalError("Failed to update assignment")
        finally:
            db.close()
