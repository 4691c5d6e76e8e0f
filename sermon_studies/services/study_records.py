"""Sanitizers and read-side normalization for study notes and materials."""

from datetime import datetime, timezone

from sermon_studies.errors import RecordValidationError

from .reference_diff import dedupe_ids

DEFAULT_DRAFT_MIN_CONTENT_LENGTH = 20
NOTE_TYPES = ('note', 'question')
MATERIAL_TYPES = ('sermon', 'study', 'group', 'guide')
MAX_TITLE_LENGTH = 200
MAX_TAG_LENGTH = 60
SCRIPTURE_NUMBER_FIELDS = ('chapter', 'toChapter', 'fromVerse', 'toVerse')

# Fields the services compute at the boundary and never write to Firestore.
DERIVED_NOTE_FIELDS = ('isDraft',)


def compute_draft_flag(content, min_length=DEFAULT_DRAFT_MIN_CONTENT_LENGTH):
    return len(str(content or '').strip()) < int(min_length)


def sanitize_title(value):
    return str(value or '').strip()[:MAX_TITLE_LENGTH]


def sanitize_tags(raw_tags):
    if not isinstance(raw_tags, (list, tuple)):
        return []
    cleaned = []
    for tag in raw_tags:
        if not isinstance(tag, str):
            continue
        cleaned.append(tag.strip()[:MAX_TAG_LENGTH])
    return dedupe_ids(cleaned)


def _positive_int(value):
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def sanitize_scripture_ref(raw_ref):
    if not isinstance(raw_ref, dict):
        return None
    book = str(raw_ref.get('book', '') or '').strip()
    if not book:
        return None
    ref = {'id': str(raw_ref.get('id', '') or '').strip(), 'book': book}
    for key in SCRIPTURE_NUMBER_FIELDS:
        if raw_ref.get(key) is None:
            continue
        number = _positive_int(raw_ref.get(key))
        if number is not None:
            ref[key] = number
    text = raw_ref.get('text')
    if isinstance(text, str) and text.strip():
        ref['text'] = text.strip()
    return ref


def sanitize_scripture_refs(raw_refs):
    if not isinstance(raw_refs, (list, tuple)):
        return []
    refs = []
    for raw_ref in raw_refs:
        ref = sanitize_scripture_ref(raw_ref)
        if ref is not None:
            refs.append(ref)
    return refs


def _list_or_empty(value):
    return list(value) if isinstance(value, (list, tuple)) else []


def normalize_note(record, draft_min_length=DEFAULT_DRAFT_MIN_CONTENT_LENGTH):
    """Outbound shape of a note: list fields present, isDraft recomputed."""
    note = dict(record)
    note['scriptureRefs'] = _list_or_empty(note.get('scriptureRefs'))
    note['tags'] = _list_or_empty(note.get('tags'))
    note['materialIds'] = _list_or_empty(note.get('materialIds'))
    note['relatedSermonIds'] = _list_or_empty(note.get('relatedSermonIds'))
    note['isDraft'] = compute_draft_flag(note.get('content'), draft_min_length)
    return note


def normalize_material(record):
    material = dict(record)
    material['noteIds'] = _list_or_empty(material.get('noteIds'))
    return material


def persistable_note(note):
    return {key: value for key, value in note.items() if key != 'id' and key not in DERIVED_NOTE_FIELDS}


def _chapter_matches(ref, chapter):
    start = ref.get('chapter')
    if start is None:
        return False
    end = ref.get('toChapter') or start
    return start <= chapter <= end


def filter_notes(notes, *, query='', tag='', book='', chapter=None, draft_only=False):
    """Apply list-view filters to already-normalized notes."""
    needle = str(query or '').strip().lower()
    tag = str(tag or '').strip()
    book = str(book or '').strip().lower()
    chapter = _positive_int(chapter) if chapter not in (None, '') else None

    result = []
    for note in notes:
        if draft_only and not note.get('isDraft'):
            continue
        if tag and tag not in note.get('tags', []):
            continue
        refs = note.get('scriptureRefs', [])
        if book and not any(str(ref.get('book', '')).lower() == book for ref in refs):
            continue
        if chapter is not None and not any(_chapter_matches(ref, chapter) for ref in refs):
            continue
        if needle:
            haystack = ' '.join([
                str(note.get('title', '') or ''),
                str(note.get('content', '') or ''),
                ' '.join(note.get('tags', [])),
            ]).lower()
            if needle not in haystack:
                continue
        result.append(note)
    return result


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


def require_text(value, field_name):
    if not isinstance(value, str) or not value.strip():
        raise RecordValidationError(f"{field_name} is required", {'field': field_name})
    return value


def check_owner_unchanged(existing, updates):
    if 'userId' not in updates:
        return
    if updates.get('userId') != existing.get('userId'):
        raise RecordValidationError('userId cannot be changed', {'record_id': existing.get('id')})


def require_peer_ids(raw_ids, field_name):
    """Return the caller's peer ids deduplicated, rejecting malformed entries.

    Stored lists are read leniently through ``dedupe_ids``; ids coming from a
    caller must already be clean document ids.
    """
    if raw_ids is None:
        return []
    if not isinstance(raw_ids, (list, tuple)):
        raise RecordValidationError(f"{field_name} must be a list", {'field': field_name})
    for ref_id in raw_ids:
        if not isinstance(ref_id, str) or not ref_id or ref_id != ref_id.strip():
            raise RecordValidationError(f"Invalid id in {field_name}: {ref_id!r}", {'field': field_name})
    return dedupe_ids(raw_ids)
