"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Per-user state (saved resources/deals, liked posts) lives in small
relation tables keyed by `(user_id, entity_id)`; the shared entity rows
never carry a user-specific flag.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceType(str, Enum):
    COURSE = "course"
    CERTIFICATE = "certificate"
    SOFTWARE = "software"
    GRANT = "grant"


class User(SQLModel, table=True):
    """A registered student (or admin) account.

    Fields:
    - `email`: unique login identifier
    - `password_hash`: hashed password string (never store plaintext)
    - `preferred_categories`: categories picked in the profile screen
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    name: str
    university: Optional[str] = None
    field_of_study: Optional[str] = None
    year_of_study: Optional[int] = None
    student_id: Optional[str] = None
    is_student: bool = True
    notifications: bool = True
    location_services: bool = False
    preferred_categories: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utcnow)


class Resource(SQLModel, table=True):
    """A course, certificate, software licence or grant listing."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    type: ResourceType = Field(index=True)
    category: str = Field(index=True)
    provider: str = ""
    url: str = ""
    is_free: bool = Field(default=True, index=True)
    deadline: Optional[date] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    difficulty: Optional[str] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    rating: Optional[float] = None
    view_count: int = 0
    save_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Deal(SQLModel, table=True):
    """A student discount offer, optionally tied to a physical location."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    company: str
    category: str = Field(index=True)
    discount: str
    original_price: Optional[float] = None
    discounted_price: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    valid_until: date
    requirements: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    verified: bool = False
    save_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Post(SQLModel, table=True):
    """A community feed post. `likes` mirrors the number of `PostLike` rows."""
    id: Optional[int] = Field(default=None, primary_key=True)
    author_id: int = Field(foreign_key="user.id", index=True)
    content: str
    category: str = Field(index=True)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    likes: int = 0
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    author: Optional[User] = Relationship()
    comments: List["Comment"] = Relationship(
        back_populates="post",
        sa_relationship_kwargs={"order_by": "Comment.id"},
    )


class Comment(SQLModel, table=True):
    """A reply attached to exactly one `Post`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="post.id", index=True)
    author_id: int = Field(foreign_key="user.id")
    content: str
    created_at: datetime = Field(default_factory=_utcnow)
    post: Optional[Post] = Relationship(back_populates="comments")
    author: Optional[User] = Relationship()


class SavedResource(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    resource_id: int = Field(foreign_key="resource.id", primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow)


class SavedDeal(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    deal_id: int = Field(foreign_key="deal.id", primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow)


class PostLike(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    post_id: int = Field(foreign_key="post.id", primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Application(SQLModel, table=True):
    """A user's application to a resource; at most one per (user, resource)."""
    __table_args__ = (UniqueConstraint("user_id", "resource_id", name="uq_application_user_resource"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    resource_id: int = Field(foreign_key="resource.id", index=True)
    status: str = Field(default="pending", index=True)
    notes: Optional[str] = None
    documents: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    resource: Optional[Resource] = Relationship()
