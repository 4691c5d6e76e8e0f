"""Firestore record store used by the study services.

Services never touch the Firestore client directly; they receive a store
instance at construction and talk to it in terms of plain dict records and
abstract field operations.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from sermon_studies.errors import BackingStoreError

from .query_utils import where_array_contains, where_equals

OVERWRITE = 'overwrite'
ARRAY_UNION = 'array_union'
ARRAY_REMOVE = 'array_remove'
FIELD_OPERATION_KINDS = (OVERWRITE, ARRAY_UNION, ARRAY_REMOVE)


@dataclass(frozen=True)
class FieldOperation:
    """One field-level write addressed at a single document."""

    collection: str
    doc_id: str
    field: str
    kind: str
    value: Any

    def __post_init__(self):
        if self.kind not in FIELD_OPERATION_KINDS:
            raise ValueError(f"Unknown field operation kind: {self.kind}")

    @classmethod
    def overwrite(cls, collection, doc_id, field, value):
        return cls(collection, doc_id, field, OVERWRITE, value)

    @classmethod
    def array_union(cls, collection, doc_id, field, element):
        return cls(collection, doc_id, field, ARRAY_UNION, element)

    @classmethod
    def array_remove(cls, collection, doc_id, field, element):
        return cls(collection, doc_id, field, ARRAY_REMOVE, element)


def snapshot_to_record(snapshot):
    data = snapshot.to_dict() or {}
    data['id'] = snapshot.id
    return data


@contextmanager
def _store_errors(action, collection, doc_id=None):
    try:
        yield
    except gexc.GoogleAPIError as exc:
        raise BackingStoreError(
            f"Firestore {action} failed for {collection}: {exc}",
            {'action': action, 'collection': collection, 'doc_id': doc_id},
        ) from exc


class FirestoreRecordStore:
    """Per-collection CRUD plus atomic multi-document batches."""

    def __init__(self, db, firestore_module=firestore):
        self.db = db
        self.firestore_module = firestore_module

    def doc_ref(self, collection, doc_id):
        return self.db.collection(collection).document(doc_id)

    def get(self, collection, doc_id):
        with _store_errors('get', collection, doc_id):
            snapshot = self.doc_ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot_to_record(snapshot)

    def list_all(self, collection):
        with _store_errors('stream', collection):
            docs = list(self.db.collection(collection).stream())
        return [snapshot_to_record(doc) for doc in docs]

    def query_equals(self, collection, field, value):
        with _store_errors('query', collection):
            docs = list(where_equals(self.db.collection(collection), field, value).stream())
        return [snapshot_to_record(doc) for doc in docs]

    def query_array_contains(self, collection, field, value):
        with _store_errors('query', collection):
            docs = list(where_array_contains(self.db.collection(collection), field, value).stream())
        return [snapshot_to_record(doc) for doc in docs]

    def create(self, collection, data):
        with _store_errors('create', collection):
            doc_ref = self.db.collection(collection).document()
            doc_ref.set(data)
        return doc_ref.id

    def merge_update(self, collection, doc_id, data):
        with _store_errors('update', collection, doc_id):
            self.doc_ref(collection, doc_id).set(data, merge=True)

    def delete(self, collection, doc_id):
        with _store_errors('delete', collection, doc_id):
            self.doc_ref(collection, doc_id).delete()

    def _field_value(self, operation):
        if operation.kind == ARRAY_UNION:
            return self.firestore_module.ArrayUnion([operation.value])
        if operation.kind == ARRAY_REMOVE:
            return self.firestore_module.ArrayRemove([operation.value])
        return operation.value

    def batch_apply(self, operations):
        """Commit all operations in one Firestore batch (all or nothing)."""
        operations = list(operations)
        if not operations:
            return
        collection = operations[0].collection
        with _store_errors('batch', collection):
            batch = self.db.batch()
            for operation in operations:
                batch.update(
                    self.doc_ref(operation.collection, operation.doc_id),
                    {operation.field: self._field_value(operation)},
                )
            batch.commit()
