"""Detect and repair one-sided note/material links.

Used by scripts/repair_study_references.py after a sync step failed midway.
A one-sided link whose other endpoint still exists is completed; a link that
points at a record that no longer exists is dropped.
"""

from dataclasses import dataclass

from sermon_studies.repositories.record_store import FieldOperation

from .reference_diff import dedupe_ids
from .reference_sync import MATERIAL_SIDE, NOTE_SIDE

LISTED_ON_NOTE = 'note'
LISTED_ON_MATERIAL = 'material'


@dataclass(frozen=True)
class ReferenceMismatch:
    note_id: str
    material_id: str
    listed_on: str


def find_reference_mismatches(notes, materials):
    note_links = {note['id']: set(dedupe_ids(note.get('materialIds'))) for note in notes}
    material_links = {material['id']: set(dedupe_ids(material.get('noteIds'))) for material in materials}

    mismatches = []
    for note in notes:
        for material_id in dedupe_ids(note.get('materialIds')):
            if note['id'] not in material_links.get(material_id, set()):
                mismatches.append(ReferenceMismatch(note['id'], material_id, LISTED_ON_NOTE))
    for material in materials:
        for note_id in dedupe_ids(material.get('noteIds')):
            if material['id'] not in note_links.get(note_id, set()):
                mismatches.append(ReferenceMismatch(note_id, material['id'], LISTED_ON_MATERIAL))
    return mismatches


def plan_repairs(mismatches, existing_note_ids, existing_material_ids):
    existing_note_ids = set(existing_note_ids)
    existing_material_ids = set(existing_material_ids)
    operations = []
    for mismatch in mismatches:
        if mismatch.listed_on == LISTED_ON_NOTE:
            if mismatch.material_id in existing_material_ids:
                operations.append(FieldOperation.array_union(
                    MATERIAL_SIDE.collection, mismatch.material_id, MATERIAL_SIDE.peer_field, mismatch.note_id,
                ))
            else:
                operations.append(FieldOperation.array_remove(
                    NOTE_SIDE.collection, mismatch.note_id, NOTE_SIDE.peer_field, mismatch.material_id,
                ))
        else:
            if mismatch.note_id in existing_note_ids:
                operations.append(FieldOperation.array_union(
                    NOTE_SIDE.collection, mismatch.note_id, NOTE_SIDE.peer_field, mismatch.material_id,
                ))
            else:
                operations.append(FieldOperation.array_remove(
                    MATERIAL_SIDE.collection, mismatch.material_id, MATERIAL_SIDE.peer_field, mismatch.note_id,
                ))
    return operations
