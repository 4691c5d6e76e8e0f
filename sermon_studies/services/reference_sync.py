"""Keeps the notes <-> materials id arrays in step on both sides.

Firestore has no foreign keys, so every write that touches ``materialIds`` on
a note or ``noteIds`` on a material has to be mirrored onto the peer
documents. This module owns that mirroring. Services persist their own
document; the orchestrator only ever edits the peer array field, never
content fields.

Ordering within one call is fixed: additions are committed before removals,
and the owning service persists its own document after the peer batches. A
failure part-way leaves the peer side more permissive than the owner side.
Nothing is rolled back; retrying the whole operation is safe because union
and remove are idempotent.

Peers that are about to gain a reference must exist and belong to the same
user (``check_peers``). Peers that are about to lose one may already be gone;
those are skipped so a dangling id never blocks an update or delete.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import List

from sermon_studies.errors import PeerAccessDenied, RecordValidationError
from sermon_studies.logging_config import log_event
from sermon_studies.repositories.record_store import FieldOperation

from .reference_diff import ReferenceDiff, dedupe_ids, diff_ids

NOTES_COLLECTION = 'studyNotes'
MATERIALS_COLLECTION = 'studyMaterials'

# Firestore rejects batches with more than 500 writes.
DEFAULT_MAX_BATCH_OPERATIONS = 500


@dataclass(frozen=True)
class RelationSide:
    """A collection plus the array field on its documents that points at the other side."""

    collection: str
    peer_field: str


NOTE_SIDE = RelationSide(NOTES_COLLECTION, 'materialIds')
MATERIAL_SIDE = RelationSide(MATERIALS_COLLECTION, 'noteIds')


class SyncState(enum.Enum):
    UNSYNCED = 'unsynced'
    PEER_BATCHES_ISSUED = 'peer_batches_issued'
    SELF_PERSISTED = 'self_persisted'


@dataclass
class SyncReport:
    owner_id: str
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    batches: int = 0
    state: SyncState = SyncState.UNSYNCED

    def mark_persisted(self):
        self.state = SyncState.SELF_PERSISTED
        log_event(
            logging.DEBUG,
            'reference_sync.self_persisted',
            owner_id=self.owner_id,
            batches=self.batches,
        )
        return self


class ReferenceSync:
    def __init__(self, store, *, max_batch_operations=DEFAULT_MAX_BATCH_OPERATIONS):
        if max_batch_operations < 1:
            raise ValueError('max_batch_operations must be positive')
        self.store = store
        self.max_batch_operations = int(max_batch_operations)

    def _commit(self, operations, report, event):
        """Commit operations as one batch, split at the Firestore write limit."""
        if not operations:
            return
        for start in range(0, len(operations), self.max_batch_operations):
            chunk = operations[start:start + self.max_batch_operations]
            self.store.batch_apply(chunk)
            report.batches += 1
        report.state = SyncState.PEER_BATCHES_ISSUED
        log_event(
            logging.INFO,
            event,
            owner_id=report.owner_id,
            collection=operations[0].collection,
            operations=len(operations),
        )

    def _union_operations(self, owner_id, peer_side, peer_ids):
        return [
            FieldOperation.array_union(peer_side.collection, peer_id, peer_side.peer_field, owner_id)
            for peer_id in peer_ids
        ]

    def _remove_operations(self, owner_id, peer_side, peer_ids):
        return [
            FieldOperation.array_remove(peer_side.collection, peer_id, peer_side.peer_field, owner_id)
            for peer_id in peer_ids
        ]

    def _split_existing(self, peer_side, peer_ids):
        existing, missing = [], []
        for peer_id in peer_ids:
            if self.store.get(peer_side.collection, peer_id) is None:
                missing.append(peer_id)
            else:
                existing.append(peer_id)
        return existing, missing

    def _existing_peers(self, owner_id, peer_side, peer_ids, report):
        existing, missing = self._split_existing(peer_side, peer_ids)
        if missing:
            report.skipped.extend(missing)
            log_event(
                logging.WARNING,
                'reference_sync.missing_peers_skipped',
                owner_id=owner_id,
                collection=peer_side.collection,
                peer_ids=missing,
            )
        return existing

    def check_peers(self, user_id, peer_side, peer_ids):
        """Refuse peer ids that do not exist or belong to someone other than user_id.

        Runs before anything is written, so a rejected call leaves no trace.
        """
        peer_ids = dedupe_ids(peer_ids)
        missing = []
        for peer_id in peer_ids:
            peer = self.store.get(peer_side.collection, peer_id)
            if peer is None:
                missing.append(peer_id)
            elif peer.get('userId') != user_id:
                raise PeerAccessDenied(peer_side.collection, peer_id)
        if missing:
            raise RecordValidationError(
                f"Unknown {peer_side.peer_field}: {', '.join(missing)}",
                {'collection': peer_side.collection, 'missing': missing},
            )
        return peer_ids

    def link_created(self, owner_id, peer_side, peer_ids) -> SyncReport:
        """Add owner_id to every listed peer after the owner was created."""
        added = diff_ids([], peer_ids).added
        report = SyncReport(owner_id=owner_id, added=added)
        self._commit(
            self._union_operations(owner_id, peer_side, added),
            report,
            'reference_sync.linked',
        )
        return report

    def sync_updated(self, owner_id, peer_side, old_ids, new_ids) -> SyncReport:
        """Mirror a replaced peer list: one union batch, then one remove batch."""
        diff: ReferenceDiff = diff_ids(old_ids, new_ids)
        report = SyncReport(owner_id=owner_id, added=list(diff.added))
        if diff.is_empty:
            return report
        self._commit(
            self._union_operations(owner_id, peer_side, diff.added),
            report,
            'reference_sync.linked',
        )
        report.removed = self._existing_peers(owner_id, peer_side, diff.removed, report)
        self._commit(
            self._remove_operations(owner_id, peer_side, report.removed),
            report,
            'reference_sync.unlinked',
        )
        return report

    def detach_by_query(self, owner_id, peer_side) -> SyncReport:
        """Strip owner_id from every peer that lists it, found by containment query.

        The full replacement list is known from the query results, so each
        match is overwritten rather than edited with a remove operator.
        """
        referencing = self.store.query_array_contains(peer_side.collection, peer_side.peer_field, owner_id)
        operations = []
        removed_from = []
        for peer in referencing:
            remaining = [ref_id for ref_id in dedupe_ids(peer.get(peer_side.peer_field)) if ref_id != owner_id]
            operations.append(FieldOperation.overwrite(peer_side.collection, peer['id'], peer_side.peer_field, remaining))
            removed_from.append(peer['id'])
        report = SyncReport(owner_id=owner_id, removed=removed_from)
        self._commit(operations, report, 'reference_sync.detached')
        return report

    def detach_listed(self, owner_id, peer_side, peer_ids) -> SyncReport:
        """Strip owner_id from the peers the owner itself lists."""
        report = SyncReport(owner_id=owner_id)
        report.removed = self._existing_peers(owner_id, peer_side, dedupe_ids(peer_ids), report)
        self._commit(
            self._remove_operations(owner_id, peer_side, report.removed),
            report,
            'reference_sync.detached',
        )
        return report
