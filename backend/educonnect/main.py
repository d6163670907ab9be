"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the EduConnect student
services backend. Controllers are intentionally thin: they accept
requests, delegate to services, and return JSON responses. Failures are
raised as exceptions and translated by the handlers in `errors`.

Endpoints implemented:
- POST /auth/register, /auth/login, /auth/refresh
- POST /auth/forgot-password, /auth/reset-password
- GET /users/me, PATCH /users/me/preferences
- GET /resources, /resources/categories, /resources/saved, /resources/applications
- GET /resources/{id}, POST /resources/{id}/save, POST /resources/{id}/apply
- GET /deals, /deals/categories, /deals/saved, /deals/{id}; POST /deals/{id}/save
- GET /community/posts, /community/categories
- POST /community/posts, /community/posts/{id}/like, /community/posts/{id}/comments
- GET /health
"""

import json
import logging
import time
import uuid
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlmodel import Session

from . import models, services
from .auth import get_current_user, get_optional_user
from .config import settings
from .database import create_db_and_tables, engine, get_session
from .errors import register_error_handlers
from .schemas import (
    ApplyIn,
    CommentIn,
    ForgotPasswordIn,
    LoginIn,
    PostIn,
    PreferencesIn,
    RefreshIn,
    RegisterIn,
    ResetPasswordIn,
)
from .utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT

app = FastAPI(title="EduConnect API")
logger = logging.getLogger("app.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

register_error_handlers(app)

# Wide-open CORS keeps the Expo dev client and local web builds working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _user_id(user: Optional[models.User]) -> Optional[int]:
    return user.id if user else None


def _page_param():
    return Query(DEFAULT_PAGE, ge=1)


def _limit_param():
    return Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def _record_resource_view(resource_id: int) -> None:
    """Background task: bump the view counter after the response is sent."""
    with Session(engine) as session:
        services.ResourceService(session).record_view(resource_id)


# --- auth -----------------------------------------------------------------

@app.post('/auth/register', status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Create an account and return the user with an access token.

    A second registration with the same email fails with 409.
    """
    out = services.AuthService(db).register(
        payload.email,
        payload.password,
        payload.name,
        university=payload.university,
        field_of_study=payload.field_of_study,
        year_of_study=payload.year_of_study,
        student_id=payload.student_id,
    )
    return {'message': 'User registered successfully', **out}


@app.post('/auth/login')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return the profile plus a signed JWT."""
    out = services.AuthService(db).authenticate(payload.email, payload.password)
    return {'message': 'Login successful', **out}


@app.post('/auth/refresh')
def refresh(payload: RefreshIn, db: Session = Depends(get_session)):
    """Reissue a token from a still-valid token sent in the body."""
    return services.AuthService(db).refresh(payload.token)


@app.post('/auth/forgot-password')
def forgot_password(payload: ForgotPasswordIn, db: Session = Depends(get_session)):
    """Start the reset flow. The response never reveals whether the email exists."""
    services.AuthService(db).forgot_password(payload.email)
    return {'message': 'If the email exists, a reset link has been sent'}


@app.post('/auth/reset-password')
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_session)):
    services.AuthService(db).reset_password(payload.token, payload.new_password)
    return {'message': 'Password reset successful'}


# --- users ----------------------------------------------------------------

@app.get('/users/me')
def get_profile(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.ProfileService(db).get(user.id)


@app.patch('/users/me/preferences')
def update_preferences(payload: PreferencesIn, db: Session = Depends(get_session),
                       user: models.User = Depends(get_current_user)):
    """Merge the supplied preference keys into the caller's profile."""
    prefs = services.ProfileService(db).update_preferences(
        user.id,
        notifications=payload.notifications,
        location_services=payload.location_services,
        categories=payload.categories,
    )
    return {'preferences': prefs}


# --- resources ------------------------------------------------------------

@app.get('/resources')
def list_resources(
    type: Optional[models.ResourceType] = None,
    category: Optional[str] = None,
    is_free: Optional[bool] = Query(None, alias='isFree'),
    search: Optional[str] = None,
    page: int = _page_param(),
    limit: int = _limit_param(),
    db: Session = Depends(get_session),
    user: Optional[models.User] = Depends(get_optional_user),
):
    """List resources newest first with optional filters.

    `saved` reflects the caller's saved set when a bearer token is sent.
    """
    return services.ResourceService(db).list(
        user_id=_user_id(user), type=type, category=category, is_free=is_free,
        search=search, page=page, limit=limit,
    )


@app.get('/resources/categories')
def resource_categories(db: Session = Depends(get_session)):
    return services.ResourceService(db).categories()


@app.get('/resources/saved')
def saved_resources(page: int = _page_param(), limit: int = _limit_param(),
                    db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.ResourceService(db).saved(user.id, page=page, limit=limit)


@app.get('/resources/applications')
def my_applications(status: Optional[str] = None, page: int = _page_param(), limit: int = _limit_param(),
                    db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.ResourceService(db).applications(user.id, status=status, page=page, limit=limit)


@app.get('/resources/{resource_id}')
def get_resource(resource_id: int, background_tasks: BackgroundTasks, db: Session = Depends(get_session),
                 user: Optional[models.User] = Depends(get_optional_user)):
    """Return a single resource and count the view once the response is sent."""
    out = services.ResourceService(db).get(resource_id, user_id=_user_id(user))
    background_tasks.add_task(_record_resource_view, resource_id)
    return out


@app.post('/resources/{resource_id}/save')
def toggle_save_resource(resource_id: int, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user)):
    """Save the resource if unsaved, unsave it otherwise."""
    return services.ResourceService(db).toggle_save(resource_id, user.id)


@app.post('/resources/{resource_id}/apply', status_code=201)
def apply_for_resource(resource_id: int, payload: Optional[ApplyIn] = None,
                       db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Submit an application; a second one for the same resource is a 409."""
    payload = payload or ApplyIn()
    return services.ResourceService(db).apply(resource_id, user.id, notes=payload.notes,
                                              documents=payload.documents)


# --- deals ----------------------------------------------------------------

@app.get('/deals')
def list_deals(
    category: Optional[str] = None,
    search: Optional[str] = None,
    verified: Optional[bool] = None,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: Optional[float] = Query(None, alias='maxDistance', gt=0),
    sort: str = Query(services.SORT_RECENT, pattern='^(recent|distance)$'),
    page: int = _page_param(),
    limit: int = _limit_param(),
    db: Session = Depends(get_session),
    user: Optional[models.User] = Depends(get_optional_user),
):
    """List deals; with `latitude`/`longitude` each located deal carries a `distance` in km."""
    return services.DealService(db).list(
        user_id=_user_id(user), category=category, search=search, verified=verified,
        latitude=latitude, longitude=longitude, max_distance=max_distance, sort=sort,
        page=page, limit=limit,
    )


@app.get('/deals/categories')
def deal_categories(db: Session = Depends(get_session)):
    return services.DealService(db).categories()


@app.get('/deals/saved')
def saved_deals(page: int = _page_param(), limit: int = _limit_param(),
                db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.DealService(db).saved(user.id, page=page, limit=limit)


@app.get('/deals/{deal_id}')
def get_deal(deal_id: int,
             latitude: Optional[float] = Query(None, ge=-90, le=90),
             longitude: Optional[float] = Query(None, ge=-180, le=180),
             db: Session = Depends(get_session),
             user: Optional[models.User] = Depends(get_optional_user)):
    return services.DealService(db).get(deal_id, user_id=_user_id(user), latitude=latitude, longitude=longitude)


@app.post('/deals/{deal_id}/save')
def toggle_save_deal(deal_id: int, db: Session = Depends(get_session),
                     user: models.User = Depends(get_current_user)):
    return services.DealService(db).toggle_save(deal_id, user.id)


# --- community ------------------------------------------------------------

@app.get('/community/posts')
def list_posts(category: Optional[str] = None, search: Optional[str] = None,
               page: int = _page_param(), limit: int = _limit_param(),
               db: Session = Depends(get_session),
               user: Optional[models.User] = Depends(get_optional_user)):
    return services.CommunityService(db).list(user_id=_user_id(user), category=category, search=search,
                                              page=page, limit=limit)


@app.get('/community/categories')
def post_categories(db: Session = Depends(get_session)):
    return services.CommunityService(db).categories()


@app.post('/community/posts', status_code=201)
def create_post(payload: PostIn, db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    """Publish a post authored by the caller."""
    return services.CommunityService(db).create_post(user.id, payload.content, payload.category, payload.tags)


@app.post('/community/posts/{post_id}/like')
def toggle_like_post(post_id: int, db: Session = Depends(get_session),
                     user: models.User = Depends(get_current_user)):
    return services.CommunityService(db).toggle_like(post_id, user.id)


@app.post('/community/posts/{post_id}/comments', status_code=201)
def add_comment(post_id: int, payload: CommentIn, db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    """Append a comment to the post; unknown post ids are a 404."""
    return services.CommunityService(db).add_comment(post_id, user.id, payload.content)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
