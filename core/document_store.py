# core/document_store.py

"""
Document store used by the authorization core.

The core only needs equality filters, "value is a member of array
column" filters and atomic multi-document writes. `DocumentStore` is
the abstract contract; `SupabaseDocumentStore` binds it to PostgREST
tables plus one Postgres function that applies a batch in a single
transaction (see database/schema.sql).
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError

from core.config import settings
from core.errors import StoreError, handle_supabase_error


Document = Dict[str, Any]


# ============================================================
# Collections
# ============================================================
ORGANIZATIONS = "organizations"
ROLES = "roles"
USERS = "users"
PROPERTIES = "properties"
RENT_RECORDS = "rent_records"
PAYMENTS = "payments"
INVOICES = "invoices"
ACCESS_REQUESTS = "access_requests"
INVITATIONS = "invitations"


# ============================================================
# Atomic batch handle
# ============================================================
class WriteBatch:
    """
    Collects set / update / delete operations and submits them as one
    all-or-nothing unit. Nothing is written until commit().
    """

    def __init__(self, committer: Callable[[List[Document]], None]):
        self._committer = committer
        self._ops: List[Document] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, document: Document) -> "WriteBatch":
        self._ops.append({
            "op": "set",
            "collection": collection,
            "id": doc_id,
            "data": {**document, "id": doc_id},
        })
        return self

    def update(self, collection: str, doc_id: str, partial: Document) -> "WriteBatch":
        self._ops.append({"op": "update", "collection": collection, "id": doc_id, "data": dict(partial)})
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append({"op": "delete", "collection": collection, "id": doc_id})
        return self

    @property
    def ops(self) -> List[Document]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("WriteBatch already committed")
        if self._ops:
            self._committer(list(self._ops))
        self._committed = True


# ============================================================
# Store contract
# ============================================================
class DocumentStore(ABC):

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Fetch one document by id, or None."""

    @abstractmethod
    def query(
        self,
        collection: str,
        equals: Optional[Dict[str, Any]] = None,
        contains: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """
        All documents matching every filter.
        `equals`: field == value (value None matches a null field).
        `contains`: value is a member of the array field.
        """

    @abstractmethod
    def set(self, collection: str, doc_id: str, document: Document) -> Document:
        """Create or replace a document."""

    @abstractmethod
    def create(self, collection: str, doc_id: str, document: Document) -> bool:
        """Insert only if absent. Returns True when this call created it."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, partial: Document) -> Optional[Document]:
        """Merge fields into an existing document; None when it does not exist."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def batch(self) -> WriteBatch:
        ...


# ============================================================
# Supabase binding
# ============================================================
class SupabaseDocumentStore(DocumentStore):
    """
    Collections map 1:1 to tables keyed by a text `id` column.
    Array fields (assigned_managers, permissions, ...) are text[] columns.
    """

    def __init__(self, client, batch_rpc: str = settings.DOCUMENT_BATCH_RPC):
        self.client = client
        self.batch_rpc = batch_rpc

    def _execute(self, operation: str, request):
        try:
            return request.execute()
        except (APIError, httpx.HTTPError) as e:
            raise handle_supabase_error(e, operation) from e

    def get(self, collection, doc_id):
        res = self._execute(
            f"Failed to fetch {collection}/{doc_id}",
            self.client.table(collection).select("*").eq("id", doc_id).limit(1),
        )
        return res.data[0] if res.data else None

    def query(self, collection, equals=None, contains=None):
        request = self.client.table(collection).select("*")

        for field, value in (equals or {}).items():
            if value is None:
                request = request.is_(field, "null")
            else:
                request = request.eq(field, value)

        for field, value in (contains or {}).items():
            request = request.contains(field, [value])

        res = self._execute(f"Failed to query {collection}", request)
        return res.data or []

    def set(self, collection, doc_id, document):
        res = self._execute(
            f"Failed to write {collection}/{doc_id}",
            self.client.table(collection).upsert({**document, "id": doc_id}, on_conflict="id"),
        )
        return res.data[0] if res.data else {**document, "id": doc_id}

    def create(self, collection, doc_id, document):
        # ON CONFLICT DO NOTHING: only the winning insert gets a row back
        res = self._execute(
            f"Failed to create {collection}/{doc_id}",
            self.client.table(collection).upsert(
                {**document, "id": doc_id},
                on_conflict="id",
                ignore_duplicates=True,
            ),
        )
        return bool(res.data)

    def update(self, collection, doc_id, partial):
        res = self._execute(
            f"Failed to update {collection}/{doc_id}",
            self.client.table(collection).update(partial).eq("id", doc_id),
        )
        return res.data[0] if res.data else None

    def delete(self, collection, doc_id):
        self._execute(
            f"Failed to delete {collection}/{doc_id}",
            self.client.table(collection).delete().eq("id", doc_id),
        )

    def batch(self):
        return WriteBatch(self._commit_batch)

    def _commit_batch(self, ops: List[Document]) -> None:
        self._execute(
            f"Failed to commit batch of {len(ops)} operations",
            self.client.rpc(self.batch_rpc, {"ops": ops}),
        )


# ============================================================
# Process-wide store
# ============================================================
_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """
    Lazily bind the store to the service-role Supabase client.
    Raises StoreError when Supabase is not configured.
    """
    global _store
    if _store is None:
        from core.supabase_client import get_supabase_client

        client = get_supabase_client()
        if client is None:
            raise StoreError("Connect document store", "Supabase client not configured")
        _store = SupabaseDocumentStore(client)
    return _store
