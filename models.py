import datetime as dt
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Union

ADMIN = "admin"
MEMBER = "member"
ROLES = (ADMIN, MEMBER)


def _calendar_date(value):
    # Timestamps ("2024-01-01T08:30:00Z") collapse to their calendar day
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value

# --- IDENTITY ---
class Identity(BaseModel):
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: str

class UserCreate(BaseModel):
    username: str = ""
    password: str = ""
    role: str = MEMBER

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

# --- NUTRITION ---
class AdherenceEntry(BaseModel):
    date: dt.date
    completed: bool = True
    note: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return _calendar_date(value)

class NutritionPlan(BaseModel):
    # Free-form: extra macro keys set by the coach are kept as-is
    model_config = ConfigDict(extra="allow")

    calories: Optional[Union[int, float, str]] = None
    protein: Optional[Union[int, float, str]] = None
    carbs: Optional[Union[int, float, str]] = None
    fats: Optional[Union[int, float, str]] = None
    notes: Optional[str] = None
    adherence: List[AdherenceEntry] = Field(default_factory=list)

# --- PROGRESS ---
class ProgressEntry(BaseModel):
    date: dt.date
    weight: float = Field(allow_inf_nan=False)
    reps: Optional[Union[int, str]] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return _calendar_date(value)

# --- CLIENT ---
class ClientRecord(BaseModel):
    id: int
    name: str
    active: bool = True
    routine: str = ""
    goal_weight: str = ""
    assigned_user_id: Optional[str] = None
    nutrition: NutritionPlan = Field(default_factory=NutritionPlan)
    progress: List[ProgressEntry] = Field(default_factory=list)
    created_at: Optional[str] = None

class ClientCreate(BaseModel):
    name: str = ""
