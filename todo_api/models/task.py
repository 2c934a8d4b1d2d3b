from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from uuid import uuid4
import enum


class Category(str, enum.Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    URGENT = "Urgent"
    OTHER = "Other"


class Recurrence(str, enum.Enum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class Task(SQLModel, table=True):
    """Task model for todo items.

    Timestamps are naive UTC.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = Field(sa_column_kwargs={"nullable": False})
    completed: bool = Field(default=False, index=True)
    due_date: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=False))
    category: Category = Field(default=Category.OTHER)
    recurring: Recurrence = Field(default=Recurrence.NONE)
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))
