"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and auxiliary logic. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories. They raise the exceptions from `errors` and leave the
HTTP translation to the central handlers.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories, serializers
from .config import settings
from .errors import AuthError, NotFoundError, ValidationError
from .utils.geo import haversine_km
from .utils.pagination import paginate_list, paginate_query

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ACCESS_PURPOSE = "access"
RESET_PURPOSE = "reset"

logger = logging.getLogger("app.services")


def create_token(user: models.User, purpose: str = ACCESS_PURPOSE, expires_in: Optional[timedelta] = None) -> str:
    """Sign a JWT carrying `user_id`, `email` and the token `purpose`."""
    if expires_in is None:
        expires_in = timedelta(hours=settings.JWT_EXPIRE_HOURS)
    expire = datetime.now(timezone.utc) + expires_in
    payload = {"user_id": user.id, "email": user.email, "purpose": purpose, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, purpose: str = ACCESS_PURPOSE) -> dict:
    """Verify `token` and return its payload.

    PyJWT errors propagate (expired, bad signature, malformed); a token
    issued for another purpose raises `jwt.InvalidTokenError`.
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("purpose", ACCESS_PURPOSE) != purpose:
        raise jwt.InvalidTokenError("token purpose mismatch")
    return payload


class AuthService:
    """Account creation, login and token lifecycle."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, email: str, password: str, name: str, **profile) -> dict:
        """Create a new user with a hashed password and return `{user, token}`."""
        user = models.User(
            email=email.strip().lower(),
            password_hash=PWD_CTX.hash(password),
            name=name.strip(),
            is_student=True,
            **profile,
        )
        user = self.user_repo.create(user)
        logger.info("user registered id=%s", user.id)
        return {"user": serializers.user_to_dict(user), "token": create_token(user)}

    def authenticate(self, email: str, password: str) -> dict:
        """Verify credentials and return `{user, token}`; raise `AuthError` otherwise."""
        user = self.user_repo.get_by_email(email.strip().lower())
        if not user or not PWD_CTX.verify(password, user.password_hash):
            raise AuthError("Invalid email or password", error="Invalid credentials")
        return {"user": serializers.user_to_dict(user), "token": create_token(user)}

    def refresh(self, token: Optional[str]) -> dict:
        """Reissue an access token from a still-valid one."""
        if not token:
            raise AuthError("Token required")
        payload = decode_token(token)
        user = self.user_repo.get(payload.get("user_id"))
        if not user:
            raise AuthError("The provided token is invalid.", error="Invalid token")
        return {"user": serializers.user_to_dict(user), "token": create_token(user)}

    def forgot_password(self, email: str) -> Optional[str]:
        """Issue a short-lived reset token if the account exists.

        The token would be delivered out of band; callers must not echo
        it back to the requester.
        """
        user = self.user_repo.get_by_email(email.strip().lower())
        if not user:
            return None
        logger.info("password reset requested user_id=%s", user.id)
        return create_token(
            user,
            purpose=RESET_PURPOSE,
            expires_in=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )

    def reset_password(self, token: str, new_password: str) -> None:
        try:
            payload = decode_token(token, purpose=RESET_PURPOSE)
        except jwt.ExpiredSignatureError:
            raise ValidationError("Reset token expired")
        except jwt.InvalidTokenError:
            raise ValidationError("Invalid reset token")
        user = self.user_repo.get(payload.get("user_id"))
        if not user:
            raise ValidationError("Invalid reset token")
        user.password_hash = PWD_CTX.hash(new_password)
        self.user_repo.save(user)


class ProfileService:
    """Read and update the caller's profile preferences."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def get(self, user_id: int) -> dict:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return serializers.user_to_dict(user)

    def update_preferences(self, user_id: int, notifications: Optional[bool] = None,
                           location_services: Optional[bool] = None,
                           categories: Optional[List[str]] = None) -> dict:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        if notifications is not None:
            user.notifications = notifications
        if location_services is not None:
            user.location_services = location_services
        if categories is not None:
            user.preferred_categories = list(categories)
        user = self.user_repo.save(user)
        return serializers.user_to_dict(user)["preferences"]


class ResourceService:
    """Listing, saving and applying for resources."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ResourceRepository(session)
        self.app_repo = repositories.ApplicationRepository(session)

    def _get_or_404(self, resource_id: int) -> models.Resource:
        resource = self.repo.get(resource_id)
        if not resource:
            raise NotFoundError("Resource not found")
        return resource

    def list(self, user_id: Optional[int] = None, type: Optional[models.ResourceType] = None,
             category: Optional[str] = None, is_free: Optional[bool] = None,
             search: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
        """Return one page of resources matching the filters, newest first.

        `saved` is resolved for `user_id` when given and is False for
        anonymous callers.
        """
        stmt = self.repo.list_query(type=type, category=category, is_free=is_free, search=search)
        result = paginate_query(self.session, stmt, page, limit)
        saved = self.repo.saved_ids(user_id, (r.id for r in result.items)) if user_id else set()
        return {
            "resources": [serializers.resource_to_dict(r, saved=r.id in saved) for r in result.items],
            "pagination": result.meta(),
        }

    def get(self, resource_id: int, user_id: Optional[int] = None) -> dict:
        resource = self._get_or_404(resource_id)
        out = serializers.resource_to_dict(resource)
        application = None
        if user_id:
            out["saved"] = resource.id in self.repo.saved_ids(user_id, [resource.id])
            application = self.app_repo.get_for_user(user_id, resource.id)
        out["applied"] = application is not None
        out["applicationStatus"] = application.status if application else None
        return out

    def record_view(self, resource_id: int) -> None:
        self.repo.increment_views(resource_id)

    def toggle_save(self, resource_id: int, user_id: int) -> dict:
        resource = self._get_or_404(resource_id)
        saved = self.repo.toggle_save(resource, user_id)
        return {
            "message": "Resource saved" if saved else "Resource unsaved",
            "saved": saved,
            "saveCount": resource.save_count,
        }

    def apply(self, resource_id: int, user_id: int, notes: Optional[str] = None,
              documents: Optional[List[str]] = None) -> dict:
        self._get_or_404(resource_id)
        application = models.Application(
            user_id=user_id,
            resource_id=resource_id,
            notes=notes,
            documents=list(documents or []),
        )
        application = self.app_repo.create(application)
        logger.info("application created user_id=%s resource_id=%s", user_id, resource_id)
        return {
            "message": "Application submitted successfully",
            "application": serializers.application_to_dict(application),
        }

    def saved(self, user_id: int, page: int = 1, limit: int = 20) -> dict:
        result = paginate_query(self.session, self.repo.saved_query(user_id), page, limit)
        return {
            "resources": [serializers.resource_to_dict(r, saved=True) for r in result.items],
            "pagination": result.meta(),
        }

    def applications(self, user_id: int, status: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
        result = paginate_query(self.session, self.app_repo.list_query(user_id, status=status), page, limit)
        return {
            "applications": [serializers.application_to_dict(a, include_resource=True) for a in result.items],
            "pagination": result.meta(),
        }

    def categories(self) -> List[str]:
        return self.repo.categories()


SORT_RECENT = "recent"
SORT_DISTANCE = "distance"


class DealService:
    """Listing and saving deals, with optional distance annotation."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.DealRepository(session)

    def _get_or_404(self, deal_id: int) -> models.Deal:
        deal = self.repo.get(deal_id)
        if not deal:
            raise NotFoundError("Deal not found")
        return deal

    @staticmethod
    def _distance(deal: models.Deal, latitude: Optional[float], longitude: Optional[float]) -> Optional[float]:
        if latitude is None or longitude is None or deal.latitude is None or deal.longitude is None:
            return None
        return haversine_km(latitude, longitude, deal.latitude, deal.longitude)

    def list(self, user_id: Optional[int] = None, category: Optional[str] = None,
             search: Optional[str] = None, verified: Optional[bool] = None,
             latitude: Optional[float] = None, longitude: Optional[float] = None,
             max_distance: Optional[float] = None, sort: str = SORT_RECENT,
             page: int = 1, limit: int = 20) -> dict:
        """Return one page of deals.

        With a user location every located deal gets a `distance` (km).
        `max_distance` drops deals farther away (or without a location);
        `sort="distance"` orders nearest first with unlocated deals last.
        Both need the full filtered set in memory before slicing the page.
        """
        if (latitude is None) != (longitude is None):
            raise ValidationError("latitude and longitude must be given together")
        has_location = latitude is not None
        if sort not in (SORT_RECENT, SORT_DISTANCE):
            raise ValidationError(f"unknown sort '{sort}'")
        if (max_distance is not None or sort == SORT_DISTANCE) and not has_location:
            raise ValidationError("a user location is required for distance filtering or sorting")

        stmt = self.repo.list_query(category=category, search=search, verified=verified)
        if max_distance is None and sort == SORT_RECENT:
            result = paginate_query(self.session, stmt, page, limit)
            rows = [(d, self._distance(d, latitude, longitude)) for d in result.items]
        else:
            rows = [(d, self._distance(d, latitude, longitude)) for d in self.repo.list_all(stmt)]
            if max_distance is not None:
                rows = [(d, dist) for d, dist in rows if dist is not None and dist <= max_distance]
            if sort == SORT_DISTANCE:
                # stable: equal distances keep newest-first order
                rows.sort(key=lambda pair: (pair[1] is None, pair[1] or 0.0))
            result = paginate_list(rows, page, limit)
            rows = result.items

        saved = self.repo.saved_ids(user_id, (d.id for d, _ in rows)) if user_id else set()
        return {
            "deals": [serializers.deal_to_dict(d, saved=d.id in saved, distance=dist) for d, dist in rows],
            "pagination": result.meta(),
        }

    def get(self, deal_id: int, user_id: Optional[int] = None,
            latitude: Optional[float] = None, longitude: Optional[float] = None) -> dict:
        deal = self._get_or_404(deal_id)
        saved = bool(user_id) and deal.id in self.repo.saved_ids(user_id, [deal.id])
        return serializers.deal_to_dict(deal, saved=saved, distance=self._distance(deal, latitude, longitude))

    def toggle_save(self, deal_id: int, user_id: int) -> dict:
        deal = self._get_or_404(deal_id)
        saved = self.repo.toggle_save(deal, user_id)
        return {
            "message": "Deal saved" if saved else "Deal unsaved",
            "saved": saved,
            "saveCount": deal.save_count,
        }

    def saved(self, user_id: int, page: int = 1, limit: int = 20) -> dict:
        result = paginate_query(self.session, self.repo.saved_query(user_id), page, limit)
        return {
            "deals": [serializers.deal_to_dict(d, saved=True) for d in result.items],
            "pagination": result.meta(),
        }

    def categories(self) -> List[str]:
        return self.repo.categories()


class CommunityService:
    """The community feed: posts, likes and comments."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.PostRepository(session)

    def _get_or_404(self, post_id: int) -> models.Post:
        post = self.repo.get(post_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    def list(self, user_id: Optional[int] = None, category: Optional[str] = None,
             search: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
        result = paginate_query(self.session, self.repo.list_query(category=category, search=search), page, limit)
        liked = self.repo.liked_ids(user_id, (p.id for p in result.items)) if user_id else set()
        return {
            "posts": [serializers.post_to_dict(p, is_liked=p.id in liked) for p in result.items],
            "pagination": result.meta(),
        }

    def create_post(self, author_id: int, content: str, category: str, tags: Optional[List[str]] = None) -> dict:
        content = (content or "").strip()
        if not content:
            raise ValidationError("content must not be empty", details=[{"field": "content", "message": "required"}])
        post = models.Post(author_id=author_id, content=content, category=category, tags=list(tags or []))
        post = self.repo.create(post)
        return serializers.post_to_dict(post)

    def toggle_like(self, post_id: int, user_id: int) -> dict:
        post = self._get_or_404(post_id)
        liked = self.repo.toggle_like(post, user_id)
        return {"isLiked": liked, "likes": post.likes}

    def add_comment(self, post_id: int, author_id: int, content: str) -> dict:
        self._get_or_404(post_id)
        content = (content or "").strip()
        if not content:
            raise ValidationError("content must not be empty", details=[{"field": "content", "message": "required"}])
        comment = self.repo.add_comment(models.Comment(post_id=post_id, author_id=author_id, content=content))
        return serializers.comment_to_dict(comment)

    def categories(self) -> List[str]:
        return self.repo.categories()
