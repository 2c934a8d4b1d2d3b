from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models import Category, Recurrence


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("Title is required")
    return value


class TaskBase(BaseModel):
    """Base task schema with common fields."""
    title: str = Field(min_length=1)
    completed: bool = False
    due_date: Optional[datetime] = None
    category: Category = Category.OTHER
    recurring: Recurrence = Recurrence.NONE

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class TaskCreate(TaskBase):
    """Schema for creating new tasks."""
    pass


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks.

    Only keys present in the request body are applied. ``dueDate`` is the one
    field that may be set to null explicitly.
    """
    title: Optional[str] = Field(default=None, min_length=1)
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    category: Optional[Category] = None
    recurring: Optional[Recurrence] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)

    @field_validator("title")
    @classmethod
    def title_required(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _require_text(value)

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in ("title", "completed", "category", "recurring"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} may not be null")
        return self


class Task(TaskBase):
    """Complete task schema with all fields."""
    id: str
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    @field_serializer("due_date", "created_at")
    def utc_isoformat(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        return _to_naive_utc(value).isoformat() + "Z"


class TaskResponse(Task):
    """Task response schema for API responses."""
    pass


class MessageResponse(BaseModel):
    message: str
