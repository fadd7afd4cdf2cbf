from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, CheckConstraint
from database import Base
from datetime import datetime

EMPTY_NUTRITION_JSON = '{"adherence": []}'
EMPTY_PROGRESS_JSON = "[]"

# --- CORE MODELS ---

class UserORM(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'member')", name="ck_users_role"),
    )

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, index=True, nullable=False) # admin, member
    created_at = Column(String, default=lambda: datetime.utcnow().isoformat())

# --- CLIENT ROSTER ---

class ClientORM(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    routine = Column(Text, default="")
    goal_weight = Column(String, default="")

    # One user per client at most; NULLs do not collide
    assigned_user_id = Column(String, ForeignKey("users.id"), unique=True, index=True, nullable=True)

    # Sub-documents stored as JSON strings
    nutrition_json = Column(Text, nullable=False, default=EMPTY_NUTRITION_JSON)
    progress_json = Column(Text, nullable=False, default=EMPTY_PROGRESS_JSON)

    # Bumped on every write; an UPDATE from a stale read matches no row
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(String, default=lambda: datetime.utcnow().isoformat())

    __mapper_args__ = {"version_id_col": version}
