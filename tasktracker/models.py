import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


# Users


class User(SQLModel, table=True):
    """Database model"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True)
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    last_login_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    is_active: bool = Field(default=True)
    email_verified: bool = Field(default=False)


class RegisterRequest(SQLModel):
    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    password: str


class LoginRequest(SQLModel):
    email: str
    password: str


class UserRead(SQLModel):
    """Public view of a user, never carries the password hash"""

    id: uuid.UUID
    username: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


# Tasks


class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(max_length=200)
    description: str | None = Field(default=None)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    completed: bool = Field(default=False)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class TaskCreate(TaskBase):
    """Schema for creating a task"""

    pass


class TaskUpdate(SQLModel):
    """Schema for updating a task - all fields optional"""

    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    completed: bool | None = None


class TaskRead(TaskBase):
    """Schema for task responses"""

    id: uuid.UUID
    completed: bool
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


# Response envelope


class PaginationMetadata(BaseModel):
    # serialized as currentPage, totalPages, ...
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool


class ApiResponse(BaseModel):
    """
    Envelope shared by every task and account endpoint.

    The read-through cache inspects ``success`` and ``data`` to decide
    whether a response may be stored.
    """

    success: bool
    message: str | None = None
    data: Any = None
    pagination: PaginationMetadata | None = None
    cached: bool = False


class AuthResponse(BaseModel):
    success: bool
    message: str
    user: UserRead
    token: str
