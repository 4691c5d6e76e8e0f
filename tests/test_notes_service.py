import pytest

from sermon_studies.errors import PeerAccessDenied, RecordNotFound, RecordValidationError
from sermon_studies.services.materials_service import MaterialService
from sermon_studies.services.notes_service import NoteService
from sermon_studies.services.reference_sync import MATERIALS_COLLECTION, NOTES_COLLECTION, ReferenceSync
from tests.fakes import InMemoryRecordStore

NOW = "2024-02-01T12:00:00+00:00"
LONG_CONTENT = "Faith comes by hearing, and hearing by the word."


@pytest.fixture()
def store():
    return InMemoryRecordStore()


@pytest.fixture()
def sync(store):
    return ReferenceSync(store)


@pytest.fixture()
def notes(store, sync):
    return NoteService(store, sync, draft_min_length=20, clock=lambda: NOW)


@pytest.fixture()
def materials(store, sync):
    return MaterialService(store, sync, clock=lambda: NOW)


def assert_links_symmetric(store):
    notes = store.list_all(NOTES_COLLECTION)
    materials = store.list_all(MATERIALS_COLLECTION)
    for note in notes:
        for material in materials:
            note_side = material["id"] in (note.get("materialIds") or [])
            material_side = note["id"] in (material.get("noteIds") or [])
            assert note_side == material_side, (note["id"], material["id"])


def test_create_note_never_persists_draft_flag(store, notes):
    note = notes.create_note("u1", "Short", ["faith"], [], [], title="New")

    stored = store.doc(NOTES_COLLECTION, note["id"])
    assert "isDraft" not in stored
    assert "id" not in stored
    assert stored["title"] == "New"
    assert stored["type"] == "note"
    assert stored["createdAt"] == NOW
    assert note["isDraft"] is True


def test_draft_flag_follows_content_length(notes):
    assert notes.create_note("u1", "x" * 19)["isDraft"] is True
    assert notes.create_note("u1", "x" * 20)["isDraft"] is False


def test_create_note_requires_owner_and_content(store, notes):
    with pytest.raises(RecordValidationError):
        notes.create_note("u1", "   ")
    with pytest.raises(RecordValidationError):
        notes.create_note("", LONG_CONTENT)
    with pytest.raises(RecordValidationError):
        notes.create_note("u1", LONG_CONTENT, note_type="essay")
    assert store.list_all(NOTES_COLLECTION) == []


def test_create_note_sanitizes_lists(notes):
    note = notes.create_note(
        "u1",
        LONG_CONTENT,
        ["faith", "faith", " hope "],
        [{"book": "Romans", "chapter": "10", "fromVerse": 17}, {"chapter": 1}, "John 3:16"],
        None,
        related_sermon_ids=["s1", "s1"],
    )

    assert note["tags"] == ["faith", "hope"]
    assert note["scriptureRefs"] == [{"id": "", "book": "Romans", "chapter": 10, "fromVerse": 17}]
    assert note["materialIds"] == []
    assert note["relatedSermonIds"] == ["s1"]


def test_create_note_with_materials_links_them(store, notes, materials):
    material = materials.create_material("u1", "Study", "study", [])

    note = notes.create_note("u1", LONG_CONTENT, material_ids=[material["id"], material["id"]])

    assert note["materialIds"] == [material["id"]]
    assert store.doc(MATERIALS_COLLECTION, material["id"])["noteIds"] == [note["id"]]
    assert_links_symmetric(store)


def test_get_note_normalizes_partial_documents(store, notes):
    store.seed(NOTES_COLLECTION, "legacy", {"userId": "u1", "content": "Content", "isDraft": False})

    note = notes.get_note("legacy")

    assert note["id"] == "legacy"
    assert note["scriptureRefs"] == []
    assert note["tags"] == []
    assert note["materialIds"] == []
    assert note["relatedSermonIds"] == []
    assert note["isDraft"] is True


def test_list_notes_returns_owner_notes_newest_first(store, notes):
    store.seed(NOTES_COLLECTION, "a", {"userId": "u1", "content": "Draft note", "createdAt": "2024-01-01"})
    store.seed(NOTES_COLLECTION, "b", {"userId": "u1", "content": LONG_CONTENT, "tags": ["faith"], "createdAt": "2024-01-02"})
    store.seed(NOTES_COLLECTION, "c", {"userId": "u2", "content": LONG_CONTENT, "createdAt": "2024-01-03"})

    listed = notes.list_notes("u1")

    assert [note["id"] for note in listed] == ["b", "a"]
    assert [note["isDraft"] for note in listed] == [False, True]
    assert listed[1]["tags"] == []


def test_update_note_recomputes_draft_and_persists_only_changes(store, notes):
    note = notes.create_note("u1", "Short", ["faith"])

    updated = notes.update_note(note["id"], {"content": LONG_CONTENT, "isDraft": True, "bogus": 1})

    assert updated["isDraft"] is False
    assert updated["content"] == LONG_CONTENT
    _, doc_id, persisted = store.merge_updates[-1]
    assert doc_id == note["id"]
    assert persisted == {"content": LONG_CONTENT, "updatedAt": NOW}


def test_update_missing_note_raises_not_found(notes):
    with pytest.raises(RecordNotFound):
        notes.update_note("missing", {"content": LONG_CONTENT})


def test_update_note_material_ids_syncs_materials(store, notes, materials):
    m1 = materials.create_material("u1", "One", "study", [])
    m2 = materials.create_material("u1", "Two", "sermon", [])
    note = notes.create_note("u1", LONG_CONTENT, material_ids=[m1["id"]])
    store.batches.clear()

    updated = notes.update_note(note["id"], {"materialIds": [m2["id"]]})

    assert len(store.batches) == 2
    assert updated["materialIds"] == [m2["id"]]
    assert store.doc(MATERIALS_COLLECTION, m1["id"])["noteIds"] == []
    assert store.doc(MATERIALS_COLLECTION, m2["id"])["noteIds"] == [note["id"]]
    assert_links_symmetric(store)


def test_delete_note_strips_it_from_referencing_materials(store, notes, materials):
    n1 = notes.create_note("u1", LONG_CONTENT)
    n2 = notes.create_note("u1", LONG_CONTENT)
    m1 = materials.create_material("u1", "One", "study", [n2["id"]])
    m2 = materials.create_material("u1", "Two", "study", [n1["id"], n2["id"]])
    store.batches.clear()

    notes.delete_note(n2["id"])

    assert len(store.batches) == 1
    assert store.doc(MATERIALS_COLLECTION, m1["id"])["noteIds"] == []
    assert store.doc(MATERIALS_COLLECTION, m2["id"])["noteIds"] == [n1["id"]]
    assert store.deleted[-1] == (NOTES_COLLECTION, n2["id"])
    assert store.doc(NOTES_COLLECTION, n2["id"]) is None
    assert_links_symmetric(store)


def test_delete_unreferenced_note_issues_no_batch(store, notes):
    note = notes.create_note("u1", LONG_CONTENT)

    notes.delete_note(note["id"])

    assert store.batches == []
    assert store.deleted == [(NOTES_COLLECTION, note["id"])]


def test_delete_missing_note_raises_not_found(store, notes):
    with pytest.raises(RecordNotFound):
        notes.delete_note("missing")
    assert store.deleted == []


def test_mixed_operations_keep_links_symmetric(store, notes, materials):
    n1 = notes.create_note("u1", LONG_CONTENT)
    n2 = notes.create_note("u1", LONG_CONTENT)
    n3 = notes.create_note("u1", LONG_CONTENT)
    m1 = materials.create_material("u1", "One", "study", [n1["id"], n2["id"]])
    m2 = materials.create_material("u1", "Two", "group", [n2["id"]])
    assert_links_symmetric(store)

    materials.update_material(m1["id"], {"noteIds": [n2["id"], n3["id"]]})
    assert_links_symmetric(store)

    notes.update_note(n3["id"], {"materialIds": [m2["id"]]})
    assert_links_symmetric(store)

    notes.delete_note(n2["id"])
    assert_links_symmetric(store)

    materials.delete_material(m2["id"])
    assert_links_symmetric(store)
    assert store.doc(NOTES_COLLECTION, n3["id"])["materialIds"] == []
    assert store.doc(MATERIALS_COLLECTION, m1["id"])["noteIds"] == []


def test_create_note_with_unknown_material_persists_nothing(store, notes):
    with pytest.raises(RecordValidationError):
        notes.create_note("u1", LONG_CONTENT, material_ids=["ghost"])

    assert store.list_all(NOTES_COLLECTION) == []
    assert store.batches == []


def test_create_note_with_another_users_material_is_denied(store, notes):
    store.seed(MATERIALS_COLLECTION, "m-foreign", {"userId": "u2", "title": "Theirs", "type": "study", "noteIds": []})

    with pytest.raises(PeerAccessDenied):
        notes.create_note("u1", LONG_CONTENT, material_ids=["m-foreign"])

    assert store.list_all(NOTES_COLLECTION) == []
    assert store.doc(MATERIALS_COLLECTION, "m-foreign")["noteIds"] == []


def test_update_note_adding_unknown_material_changes_nothing(store, notes, materials):
    material = materials.create_material("u1", "One", "study", [])
    note = notes.create_note("u1", LONG_CONTENT, material_ids=[material["id"]])
    store.batches.clear()

    with pytest.raises(RecordValidationError):
        notes.update_note(note["id"], {"materialIds": [material["id"], "ghost"]})

    assert store.batches == []
    assert store.doc(NOTES_COLLECTION, note["id"])["materialIds"] == [material["id"]]
    assert_links_symmetric(store)


def test_update_note_dropping_deleted_material_succeeds(store, notes):
    store.seed(NOTES_COLLECTION, "legacy", {"userId": "u1", "content": LONG_CONTENT, "materialIds": ["gone"]})

    updated = notes.update_note("legacy", {"materialIds": []})

    assert updated["materialIds"] == []
    assert store.batches == []
    assert store.doc(NOTES_COLLECTION, "legacy")["materialIds"] == []


@pytest.mark.parametrize("material_ids", [[" m1"], [""], [42], {"m1": True}])
def test_malformed_material_ids_are_rejected(store, notes, material_ids):
    with pytest.raises(RecordValidationError):
        notes.create_note("u1", LONG_CONTENT, material_ids=material_ids)

    assert store.list_all(NOTES_COLLECTION) == []
