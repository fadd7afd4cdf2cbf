"""
Field Authorization Policy - which client fields each role may patch.
"""
from typing import Iterable, FrozenSet

from models import ADMIN, MEMBER
from .errors import Forbidden

CLIENT_FIELDS = frozenset({
    "name", "active", "routine", "goal_weight",
    "assigned_user_id", "nutrition", "progress",
})

# Whitelist: anything not listed is denied for members, including future fields
MEMBER_FIELDS = frozenset({"nutrition", "progress"})


def authorize(role: str, requested_fields: Iterable[str]) -> FrozenSet[str]:
    """
    Return the requested field set if the role may write all of it.

    All-or-nothing: a single disallowed field rejects the whole request.
    """
    requested = frozenset(requested_fields)

    if role == ADMIN:
        return requested

    if role == MEMBER:
        denied = requested - MEMBER_FIELDS
        if denied:
            raise Forbidden(f"Members cannot update: {', '.join(sorted(denied))}")
        return requested

    raise Forbidden(f"Unknown role: {role}")
