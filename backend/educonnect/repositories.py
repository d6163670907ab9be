"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
resources, deals, posts, applications). Repositories return SQLModel
objects; write paths that must stay consistent (relation row plus
counter) commit once so both changes land in the same transaction.
"""

from typing import Iterable, List, Optional, Set

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from . import models
from .errors import ConflictError


def _newest_first(stmt, model):
    return stmt.order_by(col(model.created_at).desc(), col(model.id).desc())


def _contains(column, text: str):
    return col(column).ilike(f"%{text}%")


def _bump(session: Session, model, row_id: int, field: str, delta: int) -> None:
    """Move a counter column inside the database, never below zero."""
    column = getattr(model, field)
    stmt = update(model).where(model.id == row_id)
    if delta < 0:
        stmt = stmt.where(column > 0)
    session.exec(stmt.values({field: column + delta}))


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user; a duplicate email raises `ConflictError`."""
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("User already exists with this email")
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        return self.session.get(models.User, user_id)

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user


class ResourceRepository:
    """Queries and per-user relations for `Resource` rows."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, resource_id: int) -> Optional[models.Resource]:
        return self.session.get(models.Resource, resource_id)

    def list_query(self, type: Optional[models.ResourceType] = None, category: Optional[str] = None,
                   is_free: Optional[bool] = None, search: Optional[str] = None):
        """Build the filtered, newest-first select used by the list endpoint."""
        stmt = select(models.Resource)
        if type is not None:
            stmt = stmt.where(models.Resource.type == type)
        if category:
            stmt = stmt.where(models.Resource.category == category)
        if is_free is not None:
            stmt = stmt.where(models.Resource.is_free == is_free)
        if search:
            stmt = stmt.where(or_(
                _contains(models.Resource.title, search),
                _contains(models.Resource.description, search),
                _contains(models.Resource.provider, search),
            ))
        return _newest_first(stmt, models.Resource)

    def saved_query(self, user_id: int):
        stmt = (
            select(models.Resource)
            .join(models.SavedResource, models.SavedResource.resource_id == models.Resource.id)
            .where(models.SavedResource.user_id == user_id)
        )
        return _newest_first(stmt, models.Resource)

    def categories(self) -> List[str]:
        stmt = select(models.Resource.category).distinct().order_by(models.Resource.category)
        return list(self.session.exec(stmt).all())

    def saved_ids(self, user_id: int, resource_ids: Iterable[int]) -> Set[int]:
        ids = list(resource_ids)
        if not ids:
            return set()
        stmt = select(models.SavedResource.resource_id).where(
            models.SavedResource.user_id == user_id,
            col(models.SavedResource.resource_id).in_(ids),
        )
        return set(self.session.exec(stmt).all())

    def toggle_save(self, resource: models.Resource, user_id: int) -> bool:
        """Add or remove the save relation and adjust `save_count` in one commit.

        The counter is updated with an SQL expression so concurrent
        toggles from other sessions are not overwritten.

        Returns the new saved state.
        """
        link = self.session.get(models.SavedResource, (user_id, resource.id))
        if link:
            self.session.delete(link)
            _bump(self.session, models.Resource, resource.id, "save_count", -1)
            saved = False
        else:
            self.session.add(models.SavedResource(user_id=user_id, resource_id=resource.id))
            _bump(self.session, models.Resource, resource.id, "save_count", 1)
            saved = True
        self.session.commit()
        self.session.refresh(resource)
        return saved

    def increment_views(self, resource_id: int) -> None:
        _bump(self.session, models.Resource, resource_id, "view_count", 1)
        self.session.commit()


class ApplicationRepository:
    """Create and list `Application` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, application: models.Application) -> models.Application:
        """Insert an application; the (user, resource) unique constraint decides duplicates."""
        self.session.add(application)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Already applied for this resource")
        self.session.refresh(application)
        return application

    def get_for_user(self, user_id: int, resource_id: int) -> Optional[models.Application]:
        stmt = select(models.Application).where(
            models.Application.user_id == user_id,
            models.Application.resource_id == resource_id,
        )
        return self.session.exec(stmt).first()

    def list_query(self, user_id: int, status: Optional[str] = None):
        stmt = select(models.Application).where(models.Application.user_id == user_id)
        if status:
            stmt = stmt.where(models.Application.status == status)
        return _newest_first(stmt, models.Application)


class DealRepository:
    """Queries and per-user relations for `Deal` rows."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, deal_id: int) -> Optional[models.Deal]:
        return self.session.get(models.Deal, deal_id)

    def list_query(self, category: Optional[str] = None, search: Optional[str] = None,
                   verified: Optional[bool] = None):
        stmt = select(models.Deal)
        if category:
            stmt = stmt.where(models.Deal.category == category)
        if verified is not None:
            stmt = stmt.where(models.Deal.verified == verified)
        if search:
            stmt = stmt.where(or_(
                _contains(models.Deal.title, search),
                _contains(models.Deal.description, search),
                _contains(models.Deal.company, search),
            ))
        return _newest_first(stmt, models.Deal)

    def list_all(self, stmt) -> List[models.Deal]:
        return list(self.session.exec(stmt).all())

    def saved_query(self, user_id: int):
        stmt = (
            select(models.Deal)
            .join(models.SavedDeal, models.SavedDeal.deal_id == models.Deal.id)
            .where(models.SavedDeal.user_id == user_id)
        )
        return _newest_first(stmt, models.Deal)

    def categories(self) -> List[str]:
        stmt = select(models.Deal.category).distinct().order_by(models.Deal.category)
        return list(self.session.exec(stmt).all())

    def saved_ids(self, user_id: int, deal_ids: Iterable[int]) -> Set[int]:
        ids = list(deal_ids)
        if not ids:
            return set()
        stmt = select(models.SavedDeal.deal_id).where(
            models.SavedDeal.user_id == user_id,
            col(models.SavedDeal.deal_id).in_(ids),
        )
        return set(self.session.exec(stmt).all())

    def toggle_save(self, deal: models.Deal, user_id: int) -> bool:
        link = self.session.get(models.SavedDeal, (user_id, deal.id))
        if link:
            self.session.delete(link)
            _bump(self.session, models.Deal, deal.id, "save_count", -1)
            saved = False
        else:
            self.session.add(models.SavedDeal(user_id=user_id, deal_id=deal.id))
            _bump(self.session, models.Deal, deal.id, "save_count", 1)
            saved = True
        self.session.commit()
        self.session.refresh(deal)
        return saved


class PostRepository:
    """Community posts, their comments and like relations."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, post_id: int) -> Optional[models.Post]:
        return self.session.get(models.Post, post_id)

    def create(self, post: models.Post) -> models.Post:
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def list_query(self, category: Optional[str] = None, search: Optional[str] = None):
        stmt = select(models.Post)
        if category:
            stmt = stmt.where(models.Post.category == category)
        if search:
            stmt = stmt.where(_contains(models.Post.content, search))
        return _newest_first(stmt, models.Post)

    def categories(self) -> List[str]:
        stmt = select(models.Post.category).distinct().order_by(models.Post.category)
        return list(self.session.exec(stmt).all())

    def liked_ids(self, user_id: int, post_ids: Iterable[int]) -> Set[int]:
        ids = list(post_ids)
        if not ids:
            return set()
        stmt = select(models.PostLike.post_id).where(
            models.PostLike.user_id == user_id,
            col(models.PostLike.post_id).in_(ids),
        )
        return set(self.session.exec(stmt).all())

    def toggle_like(self, post: models.Post, user_id: int) -> bool:
        """Add or remove the like relation and adjust `likes` in one commit."""
        link = self.session.get(models.PostLike, (user_id, post.id))
        if link:
            self.session.delete(link)
            _bump(self.session, models.Post, post.id, "likes", -1)
            liked = False
        else:
            self.session.add(models.PostLike(user_id=user_id, post_id=post.id))
            _bump(self.session, models.Post, post.id, "likes", 1)
            liked = True
        self.session.commit()
        self.session.refresh(post)
        return liked

    def add_comment(self, comment: models.Comment) -> models.Comment:
        self.session.add(comment)
        self.session.commit()
        self.session.refresh(comment)
        return comment
