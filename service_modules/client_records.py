"""
Client Record Store - ClientORM rows <-> typed ClientRecord.

The nutrition and progress sub-documents live in JSON text columns. Reading
them never fails: absent, corrupt or wrongly-shaped JSON falls back to an
empty plan / empty history.
"""
import json
import logging
from typing import List, Optional

import pydantic

from models import ClientRecord, NutritionPlan, ProgressEntry
from models_orm import ClientORM, EMPTY_NUTRITION_JSON, EMPTY_PROGRESS_JSON
from .errors import NotFound

logger = logging.getLogger("valhalla")


def load_nutrition(raw: Optional[str]) -> NutritionPlan:
    if not raw:
        return NutritionPlan()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("nutrition is not an object")
        return NutritionPlan.model_validate(data)
    except (ValueError, pydantic.ValidationError) as e:
        logger.warning(f"Unreadable nutrition document, using empty plan: {e}")
        return NutritionPlan()


def load_progress(raw: Optional[str]) -> List[ProgressEntry]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("progress is not a list")
        return [ProgressEntry.model_validate(item) for item in data]
    except (ValueError, pydantic.ValidationError) as e:
        logger.warning(f"Unreadable progress document, using empty history: {e}")
        return []


def dump_nutrition(plan: NutritionPlan) -> str:
    return json.dumps(plan.model_dump(mode="json", exclude_none=True))


def dump_progress(entries: List[ProgressEntry]) -> str:
    return json.dumps([e.model_dump(mode="json", exclude_none=True) for e in entries])


def to_record(row: ClientORM) -> ClientRecord:
    return ClientRecord(
        id=row.id,
        name=row.name,
        active=bool(row.active),
        routine=row.routine or "",
        goal_weight=row.goal_weight or "",
        assigned_user_id=row.assigned_user_id or None,
        nutrition=load_nutrition(row.nutrition_json),
        progress=load_progress(row.progress_json),
        created_at=row.created_at,
    )


def new_row(name: str) -> ClientORM:
    return ClientORM(
        name=name,
        active=True,
        routine="",
        goal_weight="",
        assigned_user_id=None,
        nutrition_json=EMPTY_NUTRITION_JSON,
        progress_json=EMPTY_PROGRESS_JSON,
    )


def write_fields(row: ClientORM, record: ClientRecord) -> None:
    """Copy everything except the assignment onto the row."""
    row.name = record.name
    row.active = record.active
    row.routine = record.routine
    row.goal_weight = record.goal_weight
    row.nutrition_json = dump_nutrition(record.nutrition)
    row.progress_json = dump_progress(record.progress)


def get_row(db, client_id: int, for_update: bool = False) -> ClientORM:
    query = db.query(ClientORM).filter(ClientORM.id == client_id)
    if for_update:
        query = query.with_for_update()
    row = query.first()
    if not row:
        raise NotFound("Client not found")
    return row
