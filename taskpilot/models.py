from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, computed_field, field_validator
from sqlalchemy import JSON, DateTime, Index
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite returns naive datetimes; read them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


TaskStatus = Literal["todo", "in-progress", "done"]
AvatarType = Literal["emoji", "base64", "url"]
Theme = Literal["light", "dark", "auto"]


# ---------------------------------------------------------------------------
# Activity ledger
# ---------------------------------------------------------------------------


class ActivityAction(str, Enum):
    CREATED = "created"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    UNASSIGNED = "unassigned"
    STATUS_CHANGED = "status_changed"
    COMPLETED = "completed"
    UPDATED = "updated"


class ActivityEntry(BaseModel):
    """One immutable line of a task's history"""

    action: ActivityAction
    performed_by: str
    performed_by_name: str
    timestamp: datetime
    changes: dict[str, Any] = {}

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class Task(SQLModel, table=True):
    """Database model"""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_tenant_status", "tenant_id", "status"),
        Index("ix_tasks_tenant_assignee", "tenant_id", "assigned_to_email"),
        Index("ix_tasks_tenant_due_date", "tenant_id", "due_date"),
    )

    id: int | None = Field(default=None, primary_key=True)
    tenant_id: str = Field(max_length=200, index=True)
    owner_sub: str = Field(max_length=200, index=True)
    name: str = Field(max_length=200)
    description: str = Field(default="")
    status: str = Field(default="todo", max_length=20)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    due_date: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    assigned_to_email: str | None = Field(default=None, max_length=320)
    assigned_to_name: str | None = Field(default=None, max_length=200)
    created_by_email: str = Field(max_length=320)
    created_by_name: str = Field(max_length=200)
    activity_log: list[dict] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class TaskCreate(SQLModel):
    """Schema for creating a task"""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    status: TaskStatus = "todo"
    tags: list[str] = []
    due_date: datetime | None = None
    assigned_to_email: str | None = None
    assigned_to_name: str | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task name is required")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        return value.strip()

    @field_validator("assigned_to_email", "assigned_to_name")
    @classmethod
    def _strip_assignee(cls, value: str | None) -> str | None:
        return _strip_or_none(value)


class TaskUpdate(SQLModel):
    """Schema for updating a task - all fields optional.

    An explicit ``assigned_to_email: null`` (or blank) unassigns the task.
    """

    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None
    tags: list[str] | None = None
    due_date: datetime | None = None
    assigned_to_email: str | None = None
    assigned_to_name: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Task name cannot be blank")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None

    @field_validator("assigned_to_email", "assigned_to_name")
    @classmethod
    def _strip_assignee(cls, value: str | None) -> str | None:
        return _strip_or_none(value)


class TaskResponse(BaseModel):
    """Schema for task responses"""

    id: int
    tenant_id: str
    owner_sub: str
    name: str
    description: str
    status: TaskStatus
    tags: list[str]
    due_date: datetime | None = None
    assigned_to_email: str | None = None
    assigned_to_name: str | None = None
    created_by_email: str
    created_by_name: str
    activity_log: list[ActivityEntry]
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @computed_field
    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.status == "done":
            return False
        return get_utc_now() > self.due_date


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    tenant_id: str = Field(max_length=200, index=True)
    name: str = Field(max_length=200)
    description: str = Field(default="")
    created_by: str = Field(max_length=200)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class ProjectCreate(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name is required")
        return value


class ProjectUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Project name cannot be blank")
        return value


class ProjectResponse(BaseModel):
    id: int
    tenant_id: str
    name: str
    description: str
    created_by: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


# ---------------------------------------------------------------------------
# Family settings
# ---------------------------------------------------------------------------


class School(BaseModel):
    name: str = pydantic.Field(min_length=1, max_length=200)
    pickup_time: str | None = None
    location: str | None = None


class Routines(BaseModel):
    grocery_shopping: str = pydantic.Field(default="", max_length=200)
    school_pickup: str = pydantic.Field(default="", max_length=200)
    other: str = pydantic.Field(default="", max_length=500)


class FamilyPreferences(BaseModel):
    grocery_stores: list[str] = pydantic.Field(default_factory=list, max_length=10)
    schools: list[School] = pydantic.Field(default_factory=list, max_length=5)
    neighborhood: str = pydantic.Field(default="", max_length=200)
    zip_code: str = pydantic.Field(default="", max_length=10)
    routines: Routines = pydantic.Field(default_factory=Routines)


class FamilySettings(SQLModel, table=True):
    __tablename__ = "family_settings"

    id: int | None = Field(default=None, primary_key=True)
    tenant_id: str = Field(max_length=200, unique=True, index=True)
    preferences: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class FamilySettingsUpdate(BaseModel):
    preferences: FamilyPreferences


class FamilySettingsResponse(BaseModel):
    tenant_id: str
    preferences: FamilyPreferences
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# User profiles
# ---------------------------------------------------------------------------


class ProfilePreferences(BaseModel):
    theme: Theme = "light"
    notifications: bool = True


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(max_length=200, unique=True, index=True)
    tenant_id: str = Field(max_length=200, index=True)
    email: str = Field(max_length=320)
    name: str = Field(max_length=200)
    avatar: str | None = None
    avatar_type: str = Field(default="emoji", max_length=10)
    default_emoji: str = Field(default="👤", max_length=16)
    preferences: dict = Field(
        default_factory=lambda: ProfilePreferences().model_dump(),
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class ProfileUpdate(BaseModel):
    name: str | None = pydantic.Field(default=None, min_length=1, max_length=200)
    avatar: str | None = None
    avatar_type: AvatarType | None = None
    default_emoji: str | None = pydantic.Field(default=None, max_length=16)
    preferences: ProfilePreferences | None = None


class Avatar(BaseModel):
    type: AvatarType
    data: str


class ProfileResponse(BaseModel):
    user_id: str
    email: str
    name: str
    avatar: Avatar
    preferences: ProfilePreferences
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FamilyMember(BaseModel):
    user_id: str
    email: str
    name: str
    avatar: Avatar


# ---------------------------------------------------------------------------
# AI suggestions
# ---------------------------------------------------------------------------


class SuggestionRequest(BaseModel):
    task_name: str = pydantic.Field(min_length=1, max_length=200)
    assigned_to_name: str | None = None
    due_date: datetime | None = None
    tags: list[str] = []

    @field_validator("task_name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task name is required")
        return value


class SuggestionResponse(BaseModel):
    description: str | None = None
    generated: bool = False
    message: str | None = None
