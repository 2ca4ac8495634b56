"""
REST client for the remote list service.

Implements the three collaborator contracts the board needs (field metadata,
record source, update sink) over a small JSON API:

  GET   {base}/api/lists/{list}/fields/{field}     → {"field": {...}}
  GET   {base}/api/lists/{list}/items?filter=&fields=&limit=
                                                   → {"items": [...]}
  PATCH {base}/api/lists/{list}/items/{id}         ← {"updates": [[f, v], ...]}
                                                   → {"item": {...}} | {"error": "..."}

Calls are blocking `requests` calls pushed off the event loop.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from .config import BoardConfig
from .errors import RemoteValidationError, TransportError
from .schema import FieldDescriptor, QueryDescriptor, Record, Update

logger = logging.getLogger(__name__)

VALIDATION_STATUSES = {400, 409, 412, 422}


class RestListClient:
    """Talks to one list service."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    @classmethod
    def from_config(cls, cfg: BoardConfig) -> "RestListClient":
        return cls(cfg.base_url, token=cfg.api_token, timeout=cfg.request_timeout)

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "api", "lists"] + [quote(str(p), safe="") for p in parts])

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(f"Communications Error! {e}", None, "error")

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise TransportError(f"Invalid JSON from {response.url}", response, "error")
        if not isinstance(body, dict):
            raise TransportError(f"Unexpected response from {response.url}", response, "error")
        return body

    def _raise_for_status(self, response: requests.Response) -> None:
        if response.ok:
            return
        message = f"HTTP {response.status_code} from {response.url}"
        try:
            message = response.json().get("error") or message
        except (ValueError, AttributeError):
            pass
        if response.status_code in VALIDATION_STATUSES:
            raise RemoteValidationError(message, response, "rejected")
        raise TransportError(message, response, "error")

    # ── Blocking calls ───────────────────────────────────────

    def describe_field_sync(self, collection: str, field_id: str) -> Optional[FieldDescriptor]:
        response = self._request("GET", self._url(collection, "fields", field_id))
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        body = self._json(response)
        data = body.get("field", body)
        data.setdefault("name", field_id)
        return FieldDescriptor.from_dict(data)

    def fetch_sync(self, query: QueryDescriptor) -> Tuple[List[Record], requests.Response]:
        params: Dict[str, Any] = {}
        if query.filter is not None:
            params["filter"] = query.filter if isinstance(query.filter, str) else json.dumps(query.filter)
        if query.fields:
            params["fields"] = ",".join(query.fields)
        if query.limit:
            params["limit"] = query.limit

        response = self._request("GET", self._url(query.collection, "items"), params=params)
        self._raise_for_status(response)
        items = self._json(response).get("items", [])
        if not isinstance(items, list):
            raise TransportError(f"Unexpected items payload from {response.url}", response, "error")
        return items, response

    def update_sync(self, collection: str, item_id: str, updates: List[Update]) -> Tuple[Optional[Record], requests.Response]:
        response = self._request(
            "PATCH",
            self._url(collection, "items", item_id),
            json={"updates": [list(u) for u in updates]},
        )
        self._raise_for_status(response)
        body = self._json(response)
        if body.get("error"):
            raise RemoteValidationError(str(body["error"]), response, "rejected")
        return body.get("item"), response

    # ── Board collaborator contracts ─────────────────────────

    async def describe_field(self, collection: str, field_id: str) -> Optional[FieldDescriptor]:
        return await asyncio.to_thread(self.describe_field_sync, collection, field_id)

    async def fetch(self, query: QueryDescriptor) -> Tuple[List[Record], requests.Response]:
        return await asyncio.to_thread(self.fetch_sync, query)

    async def update(self, collection: str, item_id: str, updates: List[Update]) -> Tuple[Optional[Record], requests.Response]:
        return await asyncio.to_thread(self.update_sync, collection, item_id, updates)
