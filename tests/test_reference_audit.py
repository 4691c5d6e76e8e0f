from scripts.repair_study_references import repair_study_references
from sermon_studies.repositories.record_store import ARRAY_REMOVE, ARRAY_UNION
from sermon_studies.services.reference_audit import (
    LISTED_ON_MATERIAL,
    LISTED_ON_NOTE,
    ReferenceMismatch,
    find_reference_mismatches,
    plan_repairs,
)
from sermon_studies.services.reference_sync import MATERIALS_COLLECTION, NOTES_COLLECTION
from tests.fakes import InMemoryRecordStore


def test_consistent_links_report_no_mismatches():
    notes = [{"id": "n1", "materialIds": ["m1"]}, {"id": "n2"}]
    materials = [{"id": "m1", "noteIds": ["n1"]}]

    assert find_reference_mismatches(notes, materials) == []


def test_one_sided_links_are_reported_from_both_directions():
    notes = [{"id": "n1", "materialIds": ["m1"]}, {"id": "n2", "materialIds": []}]
    materials = [{"id": "m1", "noteIds": []}, {"id": "m2", "noteIds": ["n2"]}]

    assert find_reference_mismatches(notes, materials) == [
        ReferenceMismatch("n1", "m1", LISTED_ON_NOTE),
        ReferenceMismatch("n2", "m2", LISTED_ON_MATERIAL),
    ]


def test_plan_completes_links_to_existing_records_and_drops_dangling_ones():
    mismatches = [
        ReferenceMismatch("n1", "m1", LISTED_ON_NOTE),
        ReferenceMismatch("n1", "gone-material", LISTED_ON_NOTE),
        ReferenceMismatch("n2", "m2", LISTED_ON_MATERIAL),
        ReferenceMismatch("gone-note", "m2", LISTED_ON_MATERIAL),
    ]

    operations = plan_repairs(mismatches, ["n1", "n2"], ["m1", "m2"])

    assert [(op.collection, op.doc_id, op.kind, op.value) for op in operations] == [
        (MATERIALS_COLLECTION, "m1", ARRAY_UNION, "n1"),
        (NOTES_COLLECTION, "n1", ARRAY_REMOVE, "gone-material"),
        (NOTES_COLLECTION, "n2", ARRAY_UNION, "m2"),
        (MATERIALS_COLLECTION, "m2", ARRAY_REMOVE, "gone-note"),
    ]


def test_repair_script_dry_run_writes_nothing():
    store = InMemoryRecordStore()
    store.seed(NOTES_COLLECTION, "n1", {"materialIds": ["m1"]})
    store.seed(MATERIALS_COLLECTION, "m1", {"noteIds": []})

    found, planned = repair_study_references(store, apply_changes=False)

    assert (found, planned) == (1, 1)
    assert store.batches == []


def test_repair_script_apply_restores_symmetry():
    store = InMemoryRecordStore()
    store.seed(NOTES_COLLECTION, "n1", {"materialIds": ["m1", "m-deleted"]})
    store.seed(NOTES_COLLECTION, "n2", {"materialIds": []})
    store.seed(MATERIALS_COLLECTION, "m1", {"noteIds": ["n2"]})

    repair_study_references(store, apply_changes=True, max_batch_operations=2)

    assert [len(batch) for batch in store.batches] == [2, 1]
    assert store.doc(NOTES_COLLECTION, "n1")["materialIds"] == ["m1"]
    assert store.doc(NOTES_COLLECTION, "n2")["materialIds"] == ["m1"]
    assert store.doc(MATERIALS_COLLECTION, "m1")["noteIds"] == ["n2", "n1"]
    assert find_reference_mismatches(store.list_all(NOTES_COLLECTION), store.list_all(MATERIALS_COLLECTION)) == []
