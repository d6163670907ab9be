"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for
controller handlers and tests. Field aliases follow the camelCase wire
format used by the mobile app.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterIn(_WireModel):
    """Payload for account creation."""
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    university: Optional[str] = None
    field_of_study: Optional[str] = Field(default=None, alias="fieldOfStudy")
    year_of_study: Optional[int] = Field(default=None, alias="yearOfStudy", ge=1, le=10)
    student_id: Optional[str] = Field(default=None, alias="studentId")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)


class RefreshIn(BaseModel):
    token: Optional[str] = None


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(_WireModel):
    token: str
    new_password: str = Field(alias="newPassword", min_length=6)


class PreferencesIn(_WireModel):
    """Partial update of profile preferences; omitted keys are left as-is."""
    notifications: Optional[bool] = None
    location_services: Optional[bool] = Field(default=None, alias="locationServices")
    categories: Optional[List[str]] = None


class ApplyIn(BaseModel):
    """Optional body sent with a resource application."""
    notes: Optional[str] = None
    documents: List[str] = Field(default_factory=list)


class PostIn(BaseModel):
    """Request format for creating a community post."""
    content: str
    category: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("content must not be empty")
        return v


class CommentIn(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("content must not be empty")
        return v
