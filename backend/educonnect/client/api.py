"""Thin HTTP client for the EduConnect API.

`ApiClient` wraps an `httpx.Client` (FastAPI's `TestClient` works too)
and returns decoded JSON. Non-2xx responses raise `ApiError` carrying
the `{error, message}` body produced by the server's error handlers.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger("app.client")


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, message: str, details: Any = None):
        super().__init__(f"{status_code} {error}: {message}")
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details


def _clean(params: dict) -> dict:
    return {k: v for k, v in params.items() if v is not None}


class ApiClient:
    def __init__(self, http: httpx.Client, token: Optional[str] = None):
        self.http = http
        self.token = token

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self.http.request(method, path, headers=self._headers(), **kwargs)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            logger.warning("%s %s failed with %s", method, path, resp.status_code)
            raise ApiError(
                resp.status_code,
                body.get("error", resp.reason_phrase),
                body.get("message", resp.text),
                body.get("details"),
            )
        return resp.json()

    # auth

    def register(self, email: str, password: str, name: str, **profile) -> dict:
        out = self._request("POST", "/auth/register", json={"email": email, "password": password, "name": name, **profile})
        self.token = out["token"]
        return out

    def login(self, email: str, password: str) -> dict:
        out = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = out["token"]
        return out

    # collections

    def list_resources(self, **params) -> dict:
        return self._request("GET", "/resources", params=_clean(params))

    def list_deals(self, **params) -> dict:
        return self._request("GET", "/deals", params=_clean(params))

    def list_posts(self, **params) -> dict:
        return self._request("GET", "/community/posts", params=_clean(params))

    def categories(self, collection: str) -> list:
        path = "/community/categories" if collection == "community" else f"/{collection}/categories"
        return self._request("GET", path)

    # mutations

    def toggle_save_resource(self, resource_id: int) -> dict:
        return self._request("POST", f"/resources/{resource_id}/save")

    def apply_for_resource(self, resource_id: int, notes: Optional[str] = None, documents=None) -> dict:
        return self._request("POST", f"/resources/{resource_id}/apply",
                             json={"notes": notes, "documents": list(documents or [])})

    def toggle_save_deal(self, deal_id: int) -> dict:
        return self._request("POST", f"/deals/{deal_id}/save")

    def create_post(self, content: str, category: str, tags=()) -> dict:
        return self._request("POST", "/community/posts",
                             json={"content": content, "category": category, "tags": list(tags)})

    def toggle_like_post(self, post_id: int) -> dict:
        return self._request("POST", f"/community/posts/{post_id}/like")

    def add_comment(self, post_id: int, content: str) -> dict:
        return self._request("POST", f"/community/posts/{post_id}/comments", json={"content": content})
