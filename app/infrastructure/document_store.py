"""
Infrastructure layer: per-farm document store with merge-upsert semantics.

Two backends are provided: an in-process store used for development and
tests, and Firestore through ``firebase-admin``. Both only ever merge fields
into a document; a write never removes keys it does not name.
"""
import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from app.config import settings
from app.domain.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


def deep_merge(target: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``fields`` into ``target`` in place.

    Nested mappings are merged key by key; any other value (lists included)
    replaces what was stored.

    Args:
        target: Stored document
        fields: Fields to write

    Returns:
        The updated target
    """
    for key, value in fields.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class DocumentStore(ABC):
    """Key-value document store keyed by collection and document id."""

    @abstractmethod
    async def merge_upsert(
        self,
        collection: str,
        key: str,
        fields: Dict[str, Any],
    ) -> None:
        """
        Create the document or merge ``fields`` into it.

        Raises:
            PersistenceFailure: If the write fails
        """

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Read a document by key.

        Returns:
            The document, or None if it does not exist
        """


class InMemoryDocumentStore(DocumentStore):
    """Process-local store; documents live as long as the process."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def merge_upsert(
        self,
        collection: str,
        key: str,
        fields: Dict[str, Any],
    ) -> None:
        async with self._lock:
            documents = self._collections.setdefault(collection, {})
            deep_merge(documents.setdefault(key, {}), fields)

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document is not None else None


class FirestoreDocumentStore(DocumentStore):
    """
    Firestore backend.

    The firebase-admin client is synchronous, so calls run in a worker
    thread to keep the event loop free.
    """

    def __init__(self, credentials_path: str = ""):
        try:
            app = firebase_admin.get_app()
        except ValueError:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            app = firebase_admin.initialize_app(cred)
        self._db = firestore.client(app)
        logger.info("Firestore document store initialised")

    async def merge_upsert(
        self,
        collection: str,
        key: str,
        fields: Dict[str, Any],
    ) -> None:
        reference = self._db.collection(collection).document(key)
        try:
            await asyncio.to_thread(reference.set, fields, merge=True)
        except Exception as e:
            raise PersistenceFailure(
                f"Failed to write {collection}/{key}: {str(e)}"
            ) from e

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        reference = self._db.collection(collection).document(key)
        snapshot = await asyncio.to_thread(reference.get)
        return snapshot.to_dict() if snapshot.exists else None


# Singleton instance
_document_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """
    Get or create the configured document store.

    Returns:
        DocumentStore instance for ``settings.document_store_backend``
    """
    global _document_store
    if _document_store is None:
        backend = settings.document_store_backend.lower()
        if backend == "firestore":
            _document_store = FirestoreDocumentStore(settings.firebase_credentials_path)
        elif backend == "memory":
            _document_store = InMemoryDocumentStore()
        else:
            raise ValueError(f"Unknown document store backend '{settings.document_store_backend}'")
    return _document_store
