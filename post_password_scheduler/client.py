"""Thin HTTP client around the WordPress REST API used by the scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from .config import WordPressConfig


class ContentStoreError(RuntimeError):
    """Raised when the content store rejects a request or answers with garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WordPressClient:
    """Wrapper for the WordPress endpoints needed by the scheduler.

    Items are addressed by numeric id only. The REST route (``posts``,
    ``pages``, custom types) is remembered from the last time the item was
    listed or fetched; an unseen id is looked up under each configured type
    in turn.
    """

    def __init__(self, config: WordPressConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.auth = (config.username, config.app_password)
        self._base_url = config.base_url.rstrip("/")
        self._routes: Dict[int, str] = {}
        self._meta_cache: Dict[int, Dict[str, Any]] = {}

    # ---- transport helpers ------------------------------------------------------
    def _url(self, path: str) -> str:
        return urljoin(self._base_url + "/", "wp-json/wp/v2/" + path.lstrip("/"))

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.request(
                method,
                self._url(path),
                timeout=self._config.timeout_seconds,
                **kwargs,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            status = getattr(exc.response, "status_code", None)
            raise ContentStoreError(f"{method} {path} failed: {exc}", status_code=status) from exc
        return response

    def _route_for(self, item_id: int) -> str:
        if item_id not in self._routes:
            self.get_item(item_id)
        return self._routes[item_id]

    def _remember(self, route: str, payload: Dict[str, Any]) -> None:
        item_id = int(payload["id"])
        self._routes[item_id] = route
        meta = payload.get("meta")
        self._meta_cache[item_id] = dict(meta) if isinstance(meta, dict) else {}

    # ---- public API --------------------------------------------------------------
    def query(self, has_password: bool = True) -> List[Dict[str, Any]]:
        """Return every item of every configured post type, following all pages."""

        items: List[Dict[str, Any]] = []
        for route in self._config.post_types:
            page = 1
            while True:
                response = self._request(
                    "GET",
                    route,
                    params={
                        "context": "edit",
                        "status": "any",
                        "per_page": self._config.per_page,
                        "page": page,
                    },
                )
                payload = response.json()
                if not isinstance(payload, list):
                    raise ContentStoreError(f"Unexpected response from /wp/v2/{route}")
                for entry in payload:
                    entry.setdefault("type_route", route)
                    self._remember(route, entry)
                    items.append(entry)
                total_pages = int(response.headers.get("X-WP-TotalPages", page))
                if page >= total_pages or not payload:
                    break
                page += 1

        selection = PostSelection(items)
        if has_password:
            selection = selection.filter_protected()
        return selection.items

    def get_item(self, item_id: int) -> Dict[str, Any]:
        known = self._routes.get(item_id)
        routes = [known] if known else list(self._config.post_types)
        for route in routes:
            try:
                response = self._request("GET", f"{route}/{item_id}", params={"context": "edit"})
            except ContentStoreError as exc:
                if exc.status_code == 404 and not known:
                    continue
                raise
            payload = response.json()
            if not isinstance(payload, dict) or "id" not in payload:
                raise ContentStoreError(f"Unexpected response for item {item_id}")
            payload.setdefault("type_route", route)
            self._remember(route, payload)
            return payload
        raise ContentStoreError(f"Item {item_id} not found under {', '.join(routes)}", status_code=404)

    def update_secret(self, item_id: int, secret: str) -> Optional[int]:
        """Write a new post password. Returns the item id reported back by WordPress."""

        route = self._route_for(item_id)
        payload = self._request("POST", f"{route}/{item_id}", json={"password": secret}).json()
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        return int(payload["id"])

    def get_meta(self, item_id: int, key: str) -> Optional[Any]:
        if item_id not in self._meta_cache:
            self.get_item(item_id)
        value = self._meta_cache.get(item_id, {}).get(key)
        if value in (None, ""):
            return None
        return value

    def set_meta(self, item_id: int, key: str, value: Any) -> None:
        self._write_meta(item_id, {key: value})

    def delete_meta(self, item_id: int, key: str) -> None:
        # Registered single meta is removed by writing null.
        self._write_meta(item_id, {key: None})

    def _write_meta(self, item_id: int, meta: Dict[str, Any]) -> None:
        route = self._route_for(item_id)
        self._request("POST", f"{route}/{item_id}", json={"meta": meta})
        cached = self._meta_cache.setdefault(item_id, {})
        for key, value in meta.items():
            if value is None:
                cached.pop(key, None)
            else:
                cached[key] = value


@dataclass
class PostSelection:
    """Represents a filtered selection of raw REST items."""

    items: List[Dict[str, Any]]

    def filter_protected(self) -> "PostSelection":
        return PostSelection([item for item in self.items if item.get("password")])
