"""
Owner-scoped document store.

One JSON file per collection under the data directory, written atomically.
Every query and mutation is filtered by owner id: a record that belongs to
another owner behaves exactly like a record that does not exist.
"""

from __future__ import annotations

import json
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..utils.exceptions import InvalidInputError, ServiceError
from ..utils.fileio import atomic_write_json
from ..utils.logger import get_logger

logger = get_logger(__name__)

PROTECTED_FIELDS = ("id", "ownerId", "createdAt")
_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    return uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def validate_id(record_id: str, label: str = "record") -> None:
    if not _ID_PATTERN.match(record_id or ""):
        raise InvalidInputError(f"Invalid {label.lower()} ID format")


class DocumentStore:
    """Collections of owner-scoped JSON documents."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            # Refuse to continue: the next save would overwrite every owner's data
            logger.error("Collection file unreadable", collection=collection, error=str(e))
            raise ServiceError(f"Failed to load {collection}")
        return raw.get("documents", []) if isinstance(raw, dict) else []

    def _save(self, collection: str, documents: List[Dict[str, Any]]) -> None:
        atomic_write_json(self._path(collection), {"documents": documents})

    def find(self, collection: str, owner_id: str) -> List[Dict[str, Any]]:
        """All of one owner's documents, newest first."""
        with self._lock:
            documents = self._load(collection)
        owned = [d for d in documents if d.get("ownerId") == owner_id]
        owned.sort(key=lambda d: d.get("createdAt") or "", reverse=True)
        return owned

    def find_one(self, collection: str, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            documents = self._load(collection)
        return next(
            (d for d in documents if d.get("id") == record_id and d.get("ownerId") == owner_id),
            None,
        )

    def insert(self, collection: str, owner_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        document = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
        document.update({"id": new_id(), "ownerId": owner_id, "createdAt": utc_now_iso()})
        with self._lock:
            documents = self._load(collection)
            documents.append(document)
            self._save(collection, documents)
        logger.info("Document created", collection=collection, owner_id=owner_id, record_id=document["id"])
        return document

    def update(
        self, collection: str, record_id: str, owner_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Apply ``changes``; None when no such record exists for this owner."""
        changes = {k: v for k, v in changes.items() if k not in PROTECTED_FIELDS}
        with self._lock:
            documents = self._load(collection)
            for document in documents:
                if document.get("id") == record_id and document.get("ownerId") == owner_id:
                    document.update(changes)
                    self._save(collection, documents)
                    logger.info("Document updated", collection=collection, owner_id=owner_id, record_id=record_id)
                    return document
        return None

    def delete(self, collection: str, record_id: str, owner_id: str) -> bool:
        with self._lock:
            documents = self._load(collection)
            remaining = [
                d for d in documents
                if not (d.get("id") == record_id and d.get("ownerId") == owner_id)
            ]
            if len(remaining) == len(documents):
                return False
            self._save(collection, remaining)
        logger.info("Document deleted", collection=collection, owner_id=owner_id, record_id=record_id)
        return True

    def delete_where(self, collection: str, owner_id: str, field: str, value: Any) -> int:
        """Delete one owner's documents whose ``field`` equals ``value``."""
        with self._lock:
            documents = self._load(collection)
            remaining = [
                d for d in documents
                if not (d.get("ownerId") == owner_id and d.get(field) == value)
            ]
            removed = len(documents) - len(remaining)
            if removed:
                self._save(collection, remaining)
        if removed:
            logger.info("Documents deleted", collection=collection, owner_id=owner_id, field=field, count=removed)
        return removed
