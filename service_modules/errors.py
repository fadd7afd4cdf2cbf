"""
Domain errors raised by the services.

Every error is an HTTPException so FastAPI renders it directly; routes never
translate them. Each one is recovered at the boundary of a single operation:
the service that raises it has already rolled back its transaction.
"""
from fastapi import HTTPException, status


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Not allowed"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnknownUser(HTTPException):
    def __init__(self, user_id: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="User does not exist")
        self.user_id = user_id


class AssignmentConflict(HTTPException):
    """The user is already linked to another client."""

    def __init__(self, client_name: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User is already assigned to client: {client_name}",
        )
        self.client_name = client_name


class UsernameTaken(HTTPException):
    def __init__(self, username: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")
        self.username = username


class DuplicateDateEntry(HTTPException):
    def __init__(self, day):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An entry already exists for {day}",
        )
        self.day = day


class OutsideAllowedWindow(HTTPException):
    def __init__(self, detail: str = "Logging is not allowed at this time"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class OutOfRange(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ValidationError(HTTPException):
    """Malformed patch or request payload."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class ConcurrentUpdate(HTTPException):
    """The record changed between this request's read and its write."""

    def __init__(self, detail: str = "Client was modified by another request; reload and retry"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
