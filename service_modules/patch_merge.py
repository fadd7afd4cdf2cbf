"""
Patch-Merge Engine - applies a partial update to a client record.

Every patchable field has a named rule in MERGE_RULES. Rules are pure: they
read the current record and the patched value and return the new value, or
raise. Nothing is written until every rule has passed, so a failing field
rejects the whole patch.
"""
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, model_validator

import config
from models import ADMIN, MEMBER, ClientRecord, NutritionPlan, AdherenceEntry, ProgressEntry
from .assignment_service import normalize_user_ref
from .errors import (
    Forbidden, ValidationError, DuplicateDateEntry,
    OutsideAllowedWindow, OutOfRange
)
from .field_policy import CLIENT_FIELDS, authorize


class MemberWritePolicy(BaseModel):
    """Limits applied to data a member logs for themselves."""
    model_config = ConfigDict(frozen=True)

    min_weight: float = 30.0
    max_weight: float = 300.0
    window_start: int = 0  # hour of day, inclusive
    window_end: int = 24   # hour of day, exclusive

    @model_validator(mode="after")
    def check_limits(self):
        if not (0 <= self.window_start < self.window_end <= 24):
            raise ValueError(
                f"write window {self.window_start}-{self.window_end} must satisfy 0 <= start < end <= 24"
            )
        if self.min_weight > self.max_weight:
            raise ValueError("min_weight must not exceed max_weight")
        return self

    @classmethod
    def from_config(cls) -> "MemberWritePolicy":
        return cls(
            min_weight=config.MIN_BODY_WEIGHT,
            max_weight=config.MAX_BODY_WEIGHT,
            window_start=config.MEMBER_WRITE_WINDOW_START,
            window_end=config.MEMBER_WRITE_WINDOW_END,
        )

    def allows(self, moment: datetime) -> bool:
        return self.window_start <= moment.hour < self.window_end


class MergeContext(NamedTuple):
    role: str
    now: datetime
    policy: MemberWritePolicy


# --- HELPERS ---

def _first_error(e: pydantic.ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def _parse_entries(model, value, field: str) -> list:
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    try:
        return [model.model_validate(item) for item in value]
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {field} entry: {_first_error(e)}")


def _reject_duplicate_dates(existing: list, new: list) -> None:
    seen = {entry.date for entry in existing}
    for entry in new:
        if entry.date in seen:
            raise DuplicateDateEntry(entry.date.isoformat())
        seen.add(entry.date)


def coerce_active(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true"):
            return True
        if lowered in ("0", "false"):
            return False
    raise ValidationError("active must be a boolean")


# --- RULES ---

def _merge_name(current: ClientRecord, value, ctx: MergeContext) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Name is required")
    return value.strip()


def _merge_active(current: ClientRecord, value, ctx: MergeContext) -> bool:
    return coerce_active(value)


def _merge_routine(current: ClientRecord, value, ctx: MergeContext) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("routine must be text")
    return value


def _merge_goal_weight(current: ClientRecord, value, ctx: MergeContext) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError("goal_weight must be text or a number")
    return str(value)


def _merge_assignment(current: ClientRecord, value, ctx: MergeContext) -> Optional[str]:
    # Only normalized here; the Assignment Manager validates and writes it
    return normalize_user_ref(value)


def _merge_nutrition(current: ClientRecord, value, ctx: MergeContext) -> NutritionPlan:
    if not isinstance(value, dict):
        raise ValidationError("nutrition must be an object")

    if ctx.role == MEMBER:
        extra = set(value) - {"adherence"}
        if extra:
            raise Forbidden("Members can only log nutrition adherence")
        if "adherence" not in value:
            return current.nutrition
        new = _parse_entries(AdherenceEntry, value["adherence"], "adherence")
        _reject_duplicate_dates(current.nutrition.adherence, new)
        return current.nutrition.model_copy(
            update={"adherence": list(current.nutrition.adherence) + new}
        )

    # Admin: shallow merge; a supplied adherence list replaces the stored one
    merged = current.nutrition.model_dump()
    merged.update(value)
    try:
        return NutritionPlan.model_validate(merged)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid nutrition: {_first_error(e)}")


def _merge_progress(current: ClientRecord, value, ctx: MergeContext) -> List[ProgressEntry]:
    entries = _parse_entries(ProgressEntry, value, "progress")

    if ctx.role == ADMIN:
        return entries

    _reject_duplicate_dates(current.progress, entries)

    today = ctx.now.date()
    accepted = []
    for entry in entries:
        if entry.date != today:
            raise ValidationError("Progress can only be logged for today")
        if not (ctx.policy.min_weight <= entry.weight <= ctx.policy.max_weight):
            raise OutOfRange(
                f"Weight must be between {ctx.policy.min_weight:g} and {ctx.policy.max_weight:g}"
            )
        accepted.append(entry.model_copy(update={"weight": round(entry.weight, 1)}))

    # Newest first
    return accepted + list(current.progress)


MERGE_RULES: Dict[str, Callable] = {
    "name": _merge_name,
    "active": _merge_active,
    "routine": _merge_routine,
    "goal_weight": _merge_goal_weight,
    "assigned_user_id": _merge_assignment,
    "nutrition": _merge_nutrition,
    "progress": _merge_progress,
}


def merge(
    current: ClientRecord,
    patch: dict,
    role: str,
    now: Optional[datetime] = None,
    policy: Optional[MemberWritePolicy] = None,
) -> ClientRecord:
    """
    Return the record that results from applying `patch` to `current`.

    Fields missing from the patch keep their current value. Raises one of the
    domain errors without producing a partial record.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Patch must be an object")

    authorize(role, patch.keys())

    unknown = set(patch) - CLIENT_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if not patch:
        return current

    ctx = MergeContext(
        role=role,
        now=now or datetime.now(),
        policy=policy or MemberWritePolicy(),
    )

    if role == MEMBER and not ctx.policy.allows(ctx.now):
        raise OutsideAllowedWindow(
            f"Logging is only allowed between {ctx.policy.window_start:02d}:00 "
            f"and {ctx.policy.window_end:02d}:00"
        )

    updates = {
        field: MERGE_RULES[field](current, value, ctx)
        for field, value in patch.items()
    }
    return current.model_copy(update=updates)
