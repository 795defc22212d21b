"""
Document store abstraction used to persist repository settings per user.
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..infrastructure.logger import logger
from ..models import RepositoryConfig
from .token_store import TokenStore

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Generic collection read/write interface."""

    @abstractmethod
    def create(self, collection: str, data: Document) -> str:
        """Insert a document and return its id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a document by id."""

    @abstractmethod
    def find_one(self, collection: str, **filters: Any) -> Optional[Tuple[str, Document]]:
        """Return the first ``(id, document)`` whose fields equal ``filters``."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Document) -> None:
        """Merge ``data`` into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document; missing ids are ignored."""


class InMemoryDocumentStore(DocumentStore):
    """Process-local store backed by nested dicts."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}

    def _collection(self, name: str) -> Dict[str, Document]:
        return self._collections.setdefault(name, {})

    def create(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def find_one(self, collection: str, **filters: Any) -> Optional[Tuple[str, Document]]:
        for doc_id, doc in self._collection(collection).items():
            if all(doc.get(key) == value for key, value in filters.items()):
                return doc_id, copy.deepcopy(doc)
        return None

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise KeyError(f"No document {doc_id} in {collection}")
        docs[doc_id].update(copy.deepcopy(data))

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)


class JsonFileDocumentStore(InMemoryDocumentStore):
    """In-memory store mirrored to a single JSON file after every write."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            with self.path.open("r", encoding="utf-8") as fh:
                self._collections = json.load(fh)

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._collections, fh, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def create(self, collection: str, data: Document) -> str:
        doc_id = super().create(collection, data)
        self._flush()
        return doc_id

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        super().update(collection, doc_id, data)
        self._flush()

    def delete(self, collection: str, doc_id: str) -> None:
        super().delete(collection, doc_id)
        self._flush()


class ConfigStore:
    """
    Persists one ``RepositoryConfig`` per user.

    Owner, repository and branch live in the document; the token is kept in
    the system keyring under the user id and never written to the store.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str = "github_config",
        tokens: Optional[TokenStore] = None,
    ):
        self.store = store
        self.collection = collection
        self.tokens = tokens or TokenStore()

    def load(self, user_id: str) -> Optional[Tuple[str, RepositoryConfig]]:
        found = self.store.find_one(self.collection, user_id=user_id)
        if found is None:
            return None
        doc_id, doc = found
        token = self.tokens.load(user_id)
        if not token:
            logger.warning(f"No token in the keyring for {user_id}; configure the repository again")
            return None
        config = RepositoryConfig(
            token=token,
            owner=doc["owner"],
            repo=doc["repo"],
            branch=doc.get("branch") or "main",
        )
        return doc_id, config

    def save(self, user_id: str, config: RepositoryConfig) -> str:
        self.tokens.save(user_id, config.token)

        now = datetime.now().isoformat()
        data = {
            "user_id": user_id,
            "owner": config.owner,
            "repo": config.repo,
            "branch": config.branch,
            "updated_at": now,
        }
        existing = self.store.find_one(self.collection, user_id=user_id)
        if existing is not None:
            doc_id = existing[0]
            self.store.update(self.collection, doc_id, data)
            logger.debug(f"Updated repository config {doc_id} for {user_id}")
            return doc_id
        data["created_at"] = now
        doc_id = self.store.create(self.collection, data)
        logger.debug(f"Created repository config {doc_id} for {user_id}")
        return doc_id

    def delete(self, user_id: str) -> bool:
        had_token = self.tokens.delete(user_id)
        existing = self.store.find_one(self.collection, user_id=user_id)
        if existing is None:
            return had_token
        self.store.delete(self.collection, existing[0])
        return True


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "ConfigStore",
]
