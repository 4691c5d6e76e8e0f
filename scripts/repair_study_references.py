#!/usr/bin/env python3
import argparse
import logging
from typing import Tuple

from sermon_studies.config import load_config
from sermon_studies.extensions import init_firestore
from sermon_studies.logging_config import configure_logging, log_event
from sermon_studies.repositories.record_store import FirestoreRecordStore
from sermon_studies.services.reference_audit import find_reference_mismatches, plan_repairs
from sermon_studies.services.reference_sync import MATERIALS_COLLECTION, NOTES_COLLECTION


def repair_study_references(store, apply_changes: bool, max_batch_operations: int = 500) -> Tuple[int, int]:
    notes = store.list_all(NOTES_COLLECTION)
    materials = store.list_all(MATERIALS_COLLECTION)
    mismatches = find_reference_mismatches(notes, materials)
    operations = plan_repairs(
        mismatches,
        [note['id'] for note in notes],
        [material['id'] for material in materials],
    )
    for mismatch in mismatches:
        log_event(
            logging.INFO,
            'reference_audit.mismatch',
            note_id=mismatch.note_id,
            material_id=mismatch.material_id,
            listed_on=mismatch.listed_on,
        )
    if apply_changes:
        for start in range(0, len(operations), max_batch_operations):
            store.batch_apply(operations[start:start + max_batch_operations])
    return len(mismatches), len(operations)


def main():
    parser = argparse.ArgumentParser(description="Find and repair one-sided links between studyNotes and studyMaterials.")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply changes. Without this flag, the script runs in dry-run mode.",
    )
    args = parser.parse_args()

    config = load_config()
    configure_logging(config.log_level)
    store = FirestoreRecordStore(init_firestore(config))
    found, planned = repair_study_references(store, apply_changes=args.apply, max_batch_operations=config.max_batch_operations)
    mode = "APPLY" if args.apply else "DRY-RUN"
    print(f"[{mode}] mismatches={found}, repair_operations={planned}")
    if not args.apply:
        print("No changes were written. Re-run with --apply to persist.")


if __name__ == "__main__":
    main()
