from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["low", "medium", "high"]
PriorityFilter = Literal["low", "medium", "high", "all"]
SortOption = Literal["due_date", "priority", "created_at", "manual"]
SortDirection = Literal["asc", "desc"]

# Shared type for incoming timestamps which can be a date, datetime, or ISO8601 string
DateInput = Union[date, datetime, str]

PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[DateInput]) -> Optional[datetime]:
    """
    Normalize a timestamp input into an aware UTC datetime.
    - Strings are parsed as ISO8601; a bare date becomes midnight.
    - A date (not datetime) becomes midnight.
    - Naive datetimes are taken to be UTC; aware ones are converted to UTC.
    """
    if value is None:
        return None

    if isinstance(value, str):
        s = value.strip()
        try:
            value = datetime.fromisoformat(s)
        except ValueError:
            try:
                value = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    raise ValueError("Invalid type for date; expected date, datetime, or ISO8601 string.")


# PUBLIC_INTERFACE
class Category(BaseModel):
    """A named, colored grouping a task may belong to."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    color: str


# PUBLIC_INTERFACE
class Tag(BaseModel):
    """A named, colored label; tasks carry any number of tag ids."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    color: str


# PUBLIC_INTERFACE
class Task(BaseModel):
    """
    A single to-do item.

    Fields:
    - id: Unique identifier, never changes once assigned
    - title: Non-empty, trimmed
    - description: Optional free text
    - completed: Completion flag
    - created_at / updated_at: Aware UTC timestamps
    - due_date: Optional aware UTC timestamp
    - priority: low, medium or high
    - category_id: Optional reference to a Category
    - tags: Tag ids, duplicates dropped
    - order: Optional manual rank used by the "manual" sort
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    completed: bool = False
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime] = None
    priority: Priority = "medium"
    category_id: Optional[str] = None
    tags: Tuple[str, ...] = ()
    order: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("title must not be empty")
        return s

    @field_validator("created_at", "updated_at", "due_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Optional[DateInput]) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v))


# PUBLIC_INTERFACE
class TodoFilters(BaseModel):
    """Filter preferences applied by the view projection."""

    model_config = ConfigDict(frozen=True)

    search_term: str = ""
    priority: PriorityFilter = "all"
    category_id: str = "all"
    tags: Tuple[str, ...] = ()
    show_completed: bool = True


# PUBLIC_INTERFACE
class TodoSort(BaseModel):
    """Sort preference: key and direction."""

    model_config = ConfigDict(frozen=True)

    option: SortOption = "created_at"
    direction: SortDirection = "desc"


# PUBLIC_INTERFACE
class Theme(BaseModel):
    """Display preference; is_dark is seeded from the host at startup."""

    model_config = ConfigDict(frozen=True)

    name: str = "system"
    background: Optional[str] = None
    is_dark: bool = False
