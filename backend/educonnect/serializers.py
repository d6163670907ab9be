"""Convert ORM rows into the camelCase JSON shapes returned by the API.

Per-user flags (`saved`, `isLiked`, `applied`) are passed in by the
caller, which resolves them from the relation tables for the requesting
user.
"""

from typing import Optional

from . import models


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def user_to_dict(user: models.User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "university": user.university,
        "fieldOfStudy": user.field_of_study,
        "yearOfStudy": user.year_of_study,
        "isStudent": user.is_student,
        "preferences": {
            "notifications": user.notifications,
            "locationServices": user.location_services,
            "categories": list(user.preferred_categories or []),
        },
        "createdAt": _iso(user.created_at),
    }


def author_to_dict(user: Optional[models.User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "university": user.university}


def resource_to_dict(resource: models.Resource, saved: bool = False) -> dict:
    return {
        "id": resource.id,
        "title": resource.title,
        "description": resource.description,
        "type": resource.type.value if isinstance(resource.type, models.ResourceType) else resource.type,
        "category": resource.category,
        "provider": resource.provider,
        "url": resource.url,
        "isFree": resource.is_free,
        "deadline": _iso(resource.deadline),
        "location": resource.location,
        "duration": resource.duration,
        "difficulty": resource.difficulty,
        "tags": list(resource.tags or []),
        "rating": resource.rating,
        "viewCount": resource.view_count,
        "saveCount": resource.save_count,
        "saved": saved,
        "createdAt": _iso(resource.created_at),
    }


def application_to_dict(application: models.Application, include_resource: bool = False) -> dict:
    out = {
        "id": application.id,
        "userId": application.user_id,
        "resourceId": application.resource_id,
        "status": application.status,
        "notes": application.notes,
        "documents": list(application.documents or []),
        "createdAt": _iso(application.created_at),
    }
    if include_resource and application.resource is not None:
        out["resource"] = resource_to_dict(application.resource)
    return out


def deal_location(deal: models.Deal) -> Optional[dict]:
    if deal.latitude is None or deal.longitude is None:
        return None
    return {"latitude": deal.latitude, "longitude": deal.longitude, "address": deal.address}


def deal_to_dict(deal: models.Deal, saved: bool = False, distance: Optional[float] = None) -> dict:
    return {
        "id": deal.id,
        "title": deal.title,
        "description": deal.description,
        "company": deal.company,
        "category": deal.category,
        "discount": deal.discount,
        "originalPrice": deal.original_price,
        "discountedPrice": deal.discounted_price,
        "location": deal_location(deal),
        "validUntil": _iso(deal.valid_until),
        "requirements": list(deal.requirements or []),
        "verified": deal.verified,
        "saveCount": deal.save_count,
        "saved": saved,
        "distance": distance,
        "createdAt": _iso(deal.created_at),
    }


def comment_to_dict(comment: models.Comment) -> dict:
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "author": author_to_dict(comment.author),
        "content": comment.content,
        "timestamp": _iso(comment.created_at),
    }


def post_to_dict(post: models.Post, is_liked: bool = False) -> dict:
    return {
        "id": post.id,
        "author": author_to_dict(post.author),
        "content": post.content,
        "category": post.category,
        "tags": list(post.tags or []),
        "timestamp": _iso(post.created_at),
        "likes": post.likes,
        "comments": [comment_to_dict(c) for c in post.comments],
        "isLiked": is_liked,
    }
