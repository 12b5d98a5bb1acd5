"""
Document store client.

The application talks to a hierarchical document database through the small
DocumentStore interface below. Paths are slash-separated and alternate
collection / document segments:

    projects/{projectId}
    projects/{projectId}/courses/{courseId}
    projects/{projectId}/courses/{courseId}/schedules/{scheduleId}

Two implementations exist:
- FirestoreStore talks to Cloud Firestore over its REST API (requests)
- LocalStore keeps documents in memory, optionally persisted to a JSON file
  (development mode and tests)

Every failure surfaces as StoreError. Nothing is retried: a failed write
leaves the caller's state unchanged so the user can resubmit.

The store is built once at process start via build_store() and handed to
the repositories explicitly.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

import requests

from coursebook.config import Settings
from coursebook.errors import StoreError
from coursebook.firestore_codec import decode_fields, encode_fields, format_timestamp, parse_timestamp


logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300


@dataclass
class Document:
    id: str
    path: str
    fields: dict[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def join_path(*segments: str) -> str:
    """
    Join path segments, rejecting empty ones and embedded slashes.

    join_path("projects", pid, "courses") -> "projects/<pid>/courses"
    """
    out: list[str] = []
    for seg in segments:
        s = str(seg).strip()
        if not s or "/" in s:
            raise ValueError(f"Invalid path segment: {seg!r}")
        out.append(s)
    return "/".join(out)


def _split(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise ValueError("Empty path")
    return parts


def _check_collection(path: str) -> str:
    parts = _split(path)
    if len(parts) % 2 != 1:
        raise ValueError(f"Not a collection path: {path!r}")
    return "/".join(parts)


def _check_document(path: str) -> str:
    parts = _split(path)
    if len(parts) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts)


class DocumentStore(ABC):
    """
    get/list/create/update/delete by path.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[Document]:
        """Return the document at `path`, or None if it does not exist."""

    @abstractmethod
    def list(self, collection_path: str, order_by: Optional[str] = None, descending: bool = False) -> list[Document]:
        """
        Return the documents of a collection.

        With `order_by`, documents are sorted by that field and documents
        lacking the field are left out (Firestore query semantics). Without
        it, documents come back in id order.
        """

    @abstractmethod
    def create(self, collection_path: str, fields: dict[str, Any]) -> str:
        """Add a document with a generated id and return the id."""

    @abstractmethod
    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Overwrite the given top-level fields. Fails if the document is missing."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete one document. Subcollections are left untouched."""

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Cloud Firestore (REST)
# ---------------------------------------------------------------------------


class FirestoreStore(DocumentStore):
    def __init__(
        self,
        project_id: str,
        api_key: Optional[str] = None,
        auth_token: Optional[str] = None,
        database: str = "(default)",
        emulator_host: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        base = f"http://{emulator_host}/v1" if emulator_host else FIRESTORE_URL
        self.root = f"projects/{project_id}/databases/{database}/documents"
        self.base_url = f"{base}/{self.root}"
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"

    def _request(self, method: str, path: str, params: Any = None, json_body: Any = None) -> requests.Response:
        url = f"{self.base_url}/{path}"
        query: list[tuple[str, str]] = list(params or [])
        if self.api_key:
            query.append(("key", self.api_key))
        try:
            return self.session.request(method, url, params=query, json=json_body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(resp: requests.Response, what: str) -> None:
        if resp.ok:
            return
        message = resp.reason or "error"
        try:
            body = resp.json()
            message = body.get("error", {}).get("message") or message
        except ValueError:
            pass
        raise StoreError(f"{what}: HTTP {resp.status_code} {message}", status=resp.status_code)

    def _to_document(self, raw: dict[str, Any]) -> Document:
        # name: projects/<p>/databases/<db>/documents/<path>
        name = raw.get("name", "")
        path = name.split("/documents/", 1)[-1]
        return Document(id=path.rsplit("/", 1)[-1], path=path, fields=decode_fields(raw.get("fields", {})))

    def get(self, path: str) -> Optional[Document]:
        path = _check_document(path)
        resp = self._request("GET", path)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, f"get {path}")
        return self._to_document(resp.json())

    def _pages(self, collection_path: str, order_by: Optional[str], descending: bool) -> Iterator[dict[str, Any]]:
        params: list[tuple[str, str]] = [("pageSize", str(PAGE_SIZE))]
        if order_by:
            params.append(("orderBy", f"{order_by} desc" if descending else order_by))
        token: Optional[str] = None
        while True:
            page_params = params + ([("pageToken", token)] if token else [])
            resp = self._request("GET", collection_path, params=page_params)
            self._raise_for_status(resp, f"list {collection_path}")
            body = resp.json() or {}
            yield from body.get("documents", [])
            token = body.get("nextPageToken")
            if not token:
                return

    def list(self, collection_path: str, order_by: Optional[str] = None, descending: bool = False) -> list[Document]:
        collection_path = _check_collection(collection_path)
        docs = [self._to_document(raw) for raw in self._pages(collection_path, order_by, descending)]
        logger.debug("Listed %d document(s) from %s", len(docs), collection_path)
        return docs

    def create(self, collection_path: str, fields: dict[str, Any]) -> str:
        collection_path = _check_collection(collection_path)
        resp = self._request("POST", collection_path, json_body={"fields": encode_fields(fields)})
        self._raise_for_status(resp, f"create in {collection_path}")
        doc = self._to_document(resp.json())
        logger.info("Created %s", doc.path)
        return doc.id

    def update(self, path: str, fields: dict[str, Any]) -> None:
        path = _check_document(path)
        params = [("updateMask.fieldPaths", key) for key in fields]
        params.append(("currentDocument.exists", "true"))
        resp = self._request("PATCH", path, params=params, json_body={"fields": encode_fields(fields)})
        self._raise_for_status(resp, f"update {path}")
        logger.info("Updated %s (%s)", path, ", ".join(fields))

    def delete(self, path: str) -> None:
        path = _check_document(path)
        resp = self._request("DELETE", path)
        self._raise_for_status(resp, f"delete {path}")
        logger.info("Deleted %s", path)

    def close(self) -> None:
        self.session.close()


# ---------------------------------------------------------------------------
# Local store (memory + optional JSON file)
# ---------------------------------------------------------------------------

_TS_KEY = "__timestamp__"

# Firestore's cross-type ordering: null < bool < number < timestamp < string
_TYPE_RANK = {type(None): 0, bool: 1, int: 2, float: 2, datetime: 3, str: 4}


def _order_key(value: Any) -> tuple[int, Any]:
    rank = _TYPE_RANK.get(type(value), 5)
    if rank == 0:
        return (rank, 0)
    if rank == 5:
        return (rank, json.dumps(value, sort_keys=True, default=str))
    return (rank, value)


def _to_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_TS_KEY: format_timestamp(value)}
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    return value


def _from_json(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_TS_KEY}:
            return parse_timestamp(value[_TS_KEY])
        return {k: _from_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_json(v) for v in value]
    return value


class LocalStore(DocumentStore):
    """
    In-process document store with Firestore-like listing semantics.

    If `path` is given, the whole tree is loaded from that JSON file on start
    and written back after every change:

        {"documents": {"projects/abc": {...fields...}, ...}}

    Writes build a new document map, persist it, and only then publish it,
    so a failed file write leaves the store as it was. The published map is
    never mutated, which lets readers iterate it while another thread writes.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._docs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        if self.path is not None and self.path.exists():
            self._load()

    def _load(self) -> None:
        if self.path is None:
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StoreError(f"Cannot read local data file {self.path}: {exc}") from exc
        docs = data.get("documents", {}) if isinstance(data, dict) else {}
        self._docs = {_check_document(p): _from_json(f) for p, f in docs.items() if isinstance(f, dict)}
        logger.info("Loaded %d document(s) from %s", len(self._docs), self.path)

    def _save(self, docs: dict[str, dict[str, Any]]) -> None:
        if self.path is None:
            return
        payload = {"documents": {p: _to_json(f) for p, f in sorted(docs.items())}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write local data file {self.path}: {exc}") from exc

    def _commit(self, docs: dict[str, dict[str, Any]]) -> None:
        # caller holds self._lock
        self._save(docs)
        self._docs = docs

    @staticmethod
    def _doc(path: str, fields: dict[str, Any]) -> Document:
        return Document(id=path.rsplit("/", 1)[-1], path=path, fields=copy.deepcopy(fields))

    def get(self, path: str) -> Optional[Document]:
        path = _check_document(path)
        fields = self._docs.get(path)
        return None if fields is None else self._doc(path, fields)

    def list(self, collection_path: str, order_by: Optional[str] = None, descending: bool = False) -> list[Document]:
        collection_path = _check_collection(collection_path)
        prefix = collection_path + "/"
        docs = self._docs
        children = [(p, f) for p, f in docs.items() if p.startswith(prefix) and "/" not in p[len(prefix):]]
        if order_by:
            children = [(p, f) for p, f in children if order_by in f]
            children.sort(key=lambda item: (_order_key(item[1][order_by]), item[0]), reverse=descending)
        else:
            children.sort(key=lambda item: item[0])
        return [self._doc(p, f) for p, f in children]

    def create(self, collection_path: str, fields: dict[str, Any]) -> str:
        collection_path = _check_collection(collection_path)
        doc_id = uuid.uuid4().hex[:20]
        path = f"{collection_path}/{doc_id}"
        with self._lock:
            docs = dict(self._docs)
            docs[path] = copy.deepcopy(fields)
            self._commit(docs)
        logger.info("Created %s", path)
        return doc_id

    def put(self, path: str, fields: dict[str, Any]) -> None:
        """Create or replace a document at a known path (seeding and tests)."""
        path = _check_document(path)
        with self._lock:
            docs = dict(self._docs)
            docs[path] = copy.deepcopy(fields)
            self._commit(docs)

    def update(self, path: str, fields: dict[str, Any]) -> None:
        path = _check_document(path)
        with self._lock:
            if path not in self._docs:
                raise StoreError(f"update {path}: document not found", status=404)
            docs = dict(self._docs)
            docs[path] = {**docs[path], **copy.deepcopy(fields)}
            self._commit(docs)
        logger.info("Updated %s (%s)", path, ", ".join(fields))

    def delete(self, path: str) -> None:
        path = _check_document(path)
        with self._lock:
            docs = dict(self._docs)
            docs.pop(path, None)
            self._commit(docs)
        logger.info("Deleted %s", path)


def build_store(settings: Settings) -> DocumentStore:
    """
    Construct the store selected by the configuration.

    Raises ConfigError when the settings are incomplete for the backend.
    """
    settings.validate()
    if settings.backend == "local":
        return LocalStore(settings.data_file)
    return FirestoreStore(
        project_id=settings.firebase_project_id,
        api_key=settings.api_key,
        auth_token=settings.auth_token,
        database=settings.database,
        emulator_host=settings.emulator_host,
        timeout=settings.timeout,
    )
