"""Create/read/update/delete for study notes."""

import logging

from sermon_studies.errors import RecordNotFound, RecordValidationError
from sermon_studies.logging_config import log_event

from .reference_diff import dedupe_ids, diff_ids
from .reference_sync import MATERIAL_SIDE, NOTES_COLLECTION
from .study_records import (
    DEFAULT_DRAFT_MIN_CONTENT_LENGTH,
    NOTE_TYPES,
    check_owner_unchanged,
    normalize_note,
    persistable_note,
    require_peer_ids,
    require_text,
    sanitize_scripture_refs,
    sanitize_tags,
    sanitize_title,
    utc_now_iso,
)


def _note_type(value):
    note_type = str(value or 'note').strip().lower()
    if note_type not in NOTE_TYPES:
        raise RecordValidationError(f"Invalid note type: {value}", {'field': 'type'})
    return note_type


class NoteService:
    def __init__(self, store, sync, *, draft_min_length=DEFAULT_DRAFT_MIN_CONTENT_LENGTH, clock=utc_now_iso):
        self.store = store
        self.sync = sync
        self.draft_min_length = draft_min_length
        self.clock = clock

    def _normalize(self, record):
        return normalize_note(record, self.draft_min_length)

    def _load(self, note_id):
        record = self.store.get(NOTES_COLLECTION, note_id)
        if record is None:
            raise RecordNotFound(NOTES_COLLECTION, note_id)
        return record

    def get_note(self, note_id):
        return self._normalize(self._load(note_id))

    def list_notes(self, owner_id):
        records = self.store.query_equals(NOTES_COLLECTION, 'userId', owner_id)
        notes = [self._normalize(record) for record in records]
        notes.sort(key=lambda note: note.get('createdAt') or '', reverse=True)
        return notes

    def create_note(
        self,
        owner_id,
        content,
        tags=None,
        scripture_refs=None,
        material_ids=None,
        *,
        title=None,
        note_type='note',
        related_sermon_ids=None,
    ):
        require_text(owner_id, 'userId')
        require_text(content, 'content')
        now = self.clock()
        note = {
            'userId': owner_id,
            'content': content,
            'scriptureRefs': sanitize_scripture_refs(scripture_refs),
            'tags': sanitize_tags(tags),
            'materialIds': require_peer_ids(material_ids, 'materialIds'),
            'relatedSermonIds': dedupe_ids(related_sermon_ids),
            'type': _note_type(note_type),
            'createdAt': now,
            'updatedAt': now,
        }
        if title is not None:
            note['title'] = sanitize_title(title)
        self.sync.check_peers(owner_id, MATERIAL_SIDE, note['materialIds'])

        note_id = self.store.create(NOTES_COLLECTION, persistable_note(note))
        report = self.sync.link_created(note_id, MATERIAL_SIDE, note['materialIds'])
        report.mark_persisted()
        log_event(logging.INFO, 'study_note.created', note_id=note_id, user_id=owner_id, batches=report.batches)
        note['id'] = note_id
        return self._normalize(note)

    def _sanitize_updates(self, updates):
        changes = {}
        if 'content' in updates:
            changes['content'] = require_text(updates.get('content'), 'content')
        if 'title' in updates:
            changes['title'] = sanitize_title(updates.get('title'))
        if 'tags' in updates:
            changes['tags'] = sanitize_tags(updates.get('tags'))
        if 'scriptureRefs' in updates:
            changes['scriptureRefs'] = sanitize_scripture_refs(updates.get('scriptureRefs'))
        if 'relatedSermonIds' in updates:
            changes['relatedSermonIds'] = dedupe_ids(updates.get('relatedSermonIds'))
        if 'type' in updates:
            changes['type'] = _note_type(updates.get('type'))
        if 'materialIds' in updates:
            changes['materialIds'] = require_peer_ids(updates.get('materialIds'), 'materialIds')
        return changes

    def update_note(self, note_id, updates):
        if not isinstance(updates, dict):
            raise RecordValidationError('Invalid payload')
        existing = self._normalize(self._load(note_id))
        check_owner_unchanged(existing, updates)
        changes = self._sanitize_updates(updates)
        changes['updatedAt'] = self.clock()

        report = None
        if 'materialIds' in changes:
            added = diff_ids(existing['materialIds'], changes['materialIds']).added
            self.sync.check_peers(existing.get('userId'), MATERIAL_SIDE, added)
            report = self.sync.sync_updated(note_id, MATERIAL_SIDE, existing['materialIds'], changes['materialIds'])

        self.store.merge_update(NOTES_COLLECTION, note_id, persistable_note(changes))
        if report is not None:
            report.mark_persisted()
            log_event(
                logging.INFO,
                'study_note.references_updated',
                note_id=note_id,
                added=report.added,
                removed=report.removed,
            )
        merged = dict(existing)
        merged.update(changes)
        return self._normalize(merged)

    def delete_note(self, note_id):
        self._load(note_id)
        report = self.sync.detach_by_query(note_id, MATERIAL_SIDE)
        self.store.delete(NOTES_COLLECTION, note_id)
        log_event(logging.INFO, 'study_note.deleted', note_id=note_id, detached_from=report.removed)
