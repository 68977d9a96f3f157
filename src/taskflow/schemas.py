from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import DateInput, Priority, Task, parse_timestamp


def _strip_title(v: str) -> str:
    if v is None:
        raise ValueError("title is required")
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "due_date": "2025-02-01",
                "priority": "high",
                "category_id": "home",
                "tags": ["errand"],
            }
        }
    )

    title: str = Field(..., description="Short title for the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )
    priority: Priority = Field(default="medium", description="low, medium or high")
    category_id: Optional[str] = Field(default=None, description="Category id")
    tags: List[str] = Field(default_factory=list, description="Tag ids")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _strip_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DateInput]) -> Optional[datetime]:
        return parse_timestamp(v)


# PUBLIC_INTERFACE
class TaskEdit(TaskCreate):
    """
    Schema for editing a task. This is a full replacement of the editable
    fields: anything omitted goes back to its default.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "description": "Milk, eggs, bread, and paper towels",
                "due_date": "2025-02-02T09:30:00",
                "priority": "medium",
                "category_id": None,
                "tags": [],
            }
        }
    )


# PUBLIC_INTERFACE
class ReorderRequest(BaseModel):
    """Task ids in their new manual order."""

    ids: List[str] = Field(..., description="Task ids, first to last")


# PUBLIC_INTERFACE
class TodoListOut(BaseModel):
    """
    Envelope for the projected task list.
    """

    items: List[Task] = Field(..., description="Tasks after filtering and sorting")
    total: int = Field(..., description="Number of tasks in the collection")
    pending: int = Field(..., description="Open tasks among the projected items")


# PUBLIC_INTERFACE
class StatsOut(BaseModel):
    total: int
    completed: int
    completion_rate: int = Field(..., description="Completed share, rounded percent")
    pending: int
    by_priority: dict
    overdue: int


# PUBLIC_INTERFACE
class CaptchaToken(BaseModel):
    token: str = Field(..., min_length=1, description="Token emitted by the captcha widget")


# PUBLIC_INTERFACE
class CaptchaFailure(BaseModel):
    message: Optional[str] = Field(default=None, description="Widget error detail, logged only")


# PUBLIC_INTERFACE
class ModeRequest(BaseModel):
    mode: Literal["sign_in", "sign_up"]


# PUBLIC_INTERFACE
class Credentials(BaseModel):
    """
    Login form submission. Blank fields are passed through so the login
    controller can answer with its own message instead of a 422.
    """

    email: str = Field(default="", description="Account email")
    password: str = Field(default="", description="Account password")

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()


# PUBLIC_INTERFACE
class LoginStatusOut(BaseModel):
    mode: Literal["sign_in", "sign_up"]
    show_form: bool
    loading: bool
    submit_enabled: bool
    has_captcha_token: bool
    error: Optional[str] = None
    success_message: Optional[str] = None
