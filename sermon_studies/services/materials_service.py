"""Create/read/update/delete for study materials (sermons, studies, groups, guides)."""

import logging

from sermon_studies.errors import RecordNotFound, RecordValidationError
from sermon_studies.logging_config import log_event

from .reference_diff import diff_ids
from .reference_sync import MATERIALS_COLLECTION, NOTE_SIDE
from .study_records import (
    MATERIAL_TYPES,
    check_owner_unchanged,
    normalize_material,
    require_peer_ids,
    require_text,
    sanitize_title,
    utc_now_iso,
)


def _material_type(value):
    material_type = str(value or '').strip().lower()
    if material_type not in MATERIAL_TYPES:
        raise RecordValidationError(f"Invalid material type: {value}", {'field': 'type'})
    return material_type


def _description(value):
    return str(value or '').strip()


class MaterialService:
    def __init__(self, store, sync, *, clock=utc_now_iso):
        self.store = store
        self.sync = sync
        self.clock = clock

    def _load(self, material_id):
        record = self.store.get(MATERIALS_COLLECTION, material_id)
        if record is None:
            raise RecordNotFound(MATERIALS_COLLECTION, material_id)
        return record

    def get_material(self, material_id):
        return normalize_material(self._load(material_id))

    def list_materials(self, owner_id):
        records = self.store.query_equals(MATERIALS_COLLECTION, 'userId', owner_id)
        materials = [normalize_material(record) for record in records]
        materials.sort(key=lambda material: material.get('createdAt') or '', reverse=True)
        return materials

    def create_material(self, owner_id, title, material_type, note_ids=None, *, description=None):
        require_text(owner_id, 'userId')
        require_text(title, 'title')
        now = self.clock()
        material = {
            'userId': owner_id,
            'title': sanitize_title(title),
            'type': _material_type(material_type),
            'noteIds': require_peer_ids(note_ids, 'noteIds'),
            'createdAt': now,
            'updatedAt': now,
        }
        if description is not None:
            material['description'] = _description(description)
        self.sync.check_peers(owner_id, NOTE_SIDE, material['noteIds'])

        # The document needs an id before notes can point at it.
        material_id = self.store.create(MATERIALS_COLLECTION, dict(material))
        report = self.sync.link_created(material_id, NOTE_SIDE, material['noteIds'])
        report.mark_persisted()
        log_event(
            logging.INFO,
            'study_material.created',
            material_id=material_id,
            user_id=owner_id,
            batches=report.batches,
        )
        material['id'] = material_id
        return material

    def _sanitize_updates(self, updates):
        changes = {}
        if 'title' in updates:
            changes['title'] = sanitize_title(require_text(updates.get('title'), 'title'))
        if 'type' in updates:
            changes['type'] = _material_type(updates.get('type'))
        if 'description' in updates:
            changes['description'] = _description(updates.get('description'))
        if 'noteIds' in updates:
            changes['noteIds'] = require_peer_ids(updates.get('noteIds'), 'noteIds')
        return changes

    def update_material(self, material_id, updates):
        if not isinstance(updates, dict):
            raise RecordValidationError('Invalid payload')
        existing = normalize_material(self._load(material_id))
        check_owner_unchanged(existing, updates)
        changes = self._sanitize_updates(updates)
        changes['updatedAt'] = self.clock()

        report = None
        if 'noteIds' in changes:
            added = diff_ids(existing['noteIds'], changes['noteIds']).added
            self.sync.check_peers(existing.get('userId'), NOTE_SIDE, added)
            report = self.sync.sync_updated(material_id, NOTE_SIDE, existing['noteIds'], changes['noteIds'])

        self.store.merge_update(MATERIALS_COLLECTION, material_id, changes)
        if report is not None:
            report.mark_persisted()
            log_event(
                logging.INFO,
                'study_material.references_updated',
                material_id=material_id,
                added=report.added,
                removed=report.removed,
            )
        merged = dict(existing)
        merged.update(changes)
        return merged

    def delete_material(self, material_id):
        existing = normalize_material(self._load(material_id))
        report = self.sync.detach_listed(material_id, NOTE_SIDE, existing['noteIds'])
        self.store.delete(MATERIALS_COLLECTION, material_id)
        log_event(
            logging.INFO,
            'study_material.deleted',
            material_id=material_id,
            detached_from=report.removed,
            missing_notes=report.skipped,
        )
