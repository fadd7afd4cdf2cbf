"""
Client Service - the client roster as seen and edited by admins and members.

Reads are filtered per caller (admins see every client, members only the one
assigned to them). Writes go through the field policy and patch-merge engine,
and assignment changes through the AssignmentService, all in one transaction.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from database import get_session_factory
from models import ClientRecord, Identity
from models_orm import ClientORM
from .assignment_service import AssignmentService
from .client_records import get_row, new_row, to_record, write_fields
from .errors import AssignmentConflict, ConcurrentUpdate, Forbidden, InternalError, NotFound, ValidationError
from .patch_merge import MemberWritePolicy, merge

logger = logging.getLogger("valhalla")


class ClientService:
    """Service for client records."""

    def __init__(
        self,
        session_factory,
        assignments: Optional[AssignmentService] = None,
        policy: Optional[MemberWritePolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        self.assignments = assignments or AssignmentService(session_factory)
        self.policy = policy or MemberWritePolicy()
        self.clock = clock

    def _visible_query(self, db, identity: Identity):
        query = db.query(ClientORM)
        if not identity.is_admin:
            query = query.filter(ClientORM.assigned_user_id == identity.id)
        return query

    def list_visible(self, identity: Identity) -> List[ClientRecord]:
        """All clients for admins (newest first); the caller's own client, if any, for members."""
        db = self.session_factory()
        try:
            rows = self._visible_query(db, identity).order_by(ClientORM.id.desc()).all()
            return [to_record(row) for row in rows]
        finally:
            db.close()

    def get_visible(self, identity: Identity, client_id: int) -> ClientRecord:
        db = self.session_factory()
        try:
            row = self._visible_query(db, identity).filter(ClientORM.id == client_id).first()
            if not row:
                raise NotFound("Client not found")
            return to_record(row)
        finally:
            db.close()

    def create_client(self, identity: Identity, name: str) -> ClientRecord:
        """Create a client from a name; every other field starts empty."""
        if not identity.is_admin:
            raise Forbidden("Admin only")

        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ValidationError("Name is required")

        db = self.session_factory()
        try:
            row = new_row(name)
            db.add(row)
            db.commit()
            db.refresh(row)

            logger.info(f"Client {row.id} ({name}) created by {identity.id}")
            return to_record(row)
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating client: {e}", exc_info=True)
            raise InternalError("Failed to create client")
        finally:
            db.close()

    def update_client(self, identity: Identity, client_id: int, patch: dict) -> ClientRecord:
        """
        Apply a partial update.

        Either every field in the patch is applied or none is: validation runs
        on an in-memory copy and the row is only written after it passes.
        The write is conditional on the row version read at the start, so a
        request that committed in between turns this one into ConcurrentUpdate.
        """
        db = self.session_factory()
        try:
            row = get_row(db, client_id, for_update=True)
            current = to_record(row)

            if not identity.is_admin and current.assigned_user_id != identity.id:
                raise NotFound("Client not found")

            updated = merge(current, patch, identity.role, now=self.clock(), policy=self.policy)

            if "assigned_user_id" in patch:
                self.assignments.apply(db, row, updated.assigned_user_id)
            write_fields(row, updated)

            db.commit()
            db.refresh(row)

            logger.info(f"Client {client_id} updated by {identity.id}: {', '.join(sorted(patch)) or 'no changes'}")
            return to_record(row)

        except HTTPException:
            db.rollback()
            raise
        except IntegrityError:
            db.rollback()
            raise AssignmentConflict("another client")
        except StaleDataError:
            db.rollback()
            logger.warning(f"Client {client_id} changed during update by {identity.id}; rejected")
            raise ConcurrentUpdate()
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating client {client_id}: {e}", exc_info=True)
            raise InternalError("Failed to update client")
        finally:
            db.close()

    def delete_client(self, identity: Identity, client_id: int) -> dict:
        """Hard-delete a client. The assigned user account is left untouched."""
        if not identity.is_admin:
            raise Forbidden("Admin only")

        db = self.session_factory()
        try:
            row = get_row(db, client_id)
            db.delete(row)
            db.commit()

            logger.info(f"Client {client_id} deleted by {identity.id}")
            return {"status": "success", "message": "Client deleted"}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting client {client_id}: {e}", exc_info=True)
            raise InternalError("Failed to delete client")
        finally:
            db.close()


def get_client_service(session_factory=Depends(get_session_factory)) -> ClientService:
    """Dependency injection helper."""
    return ClientService(session_factory, policy=MemberWritePolicy.from_config())
