"""Business logic handlers for study notes and materials APIs."""

from flask import jsonify

from sermon_studies.errors import PeerAccessDenied, RecordNotFound, RecordValidationError

from .auth_service import request_uid
from .study_records import filter_notes


def _unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401


def _truthy(value):
    return str(value or '').strip().lower() in {'1', 'true', 'yes'}


def _load_owned(loader, record_id, uid):
    """Return (record, None) for the caller's record, or (None, error response)."""
    try:
        record = loader(record_id)
    except RecordNotFound:
        return None, (jsonify({'error': 'Not found'}), 404)
    if record.get('userId') != uid:
        return None, (jsonify({'error': 'Forbidden'}), 403)
    return record, None


def _update_payload(request, uid):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None, (jsonify({'error': 'Invalid payload'}), 400)
    if 'userId' in payload and payload.get('userId') != uid:
        return None, (jsonify({'error': 'Cannot change record owner'}), 400)
    updates = {key: value for key, value in payload.items() if key not in ('id', 'userId')}
    return updates, None


def list_notes(ctx, request):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        notes = ctx.notes.list_notes(uid)
        notes = filter_notes(
            notes,
            query=request.args.get('q', ''),
            tag=request.args.get('tag', ''),
            book=request.args.get('book', ''),
            chapter=request.args.get('chapter'),
            draft_only=_truthy(request.args.get('draftOnly')),
        )
        return jsonify(notes)
    except Exception as e:
        ctx.logger.error(f"Error fetching study notes for user {uid}: {e}")
        return jsonify({'error': 'Failed to fetch study notes'}), 500


def create_note(ctx, request):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({'error': 'Invalid payload'}), 400
    if not str(payload.get('content', '') or '').strip():
        return jsonify({'error': 'content is required'}), 400
    try:
        note = ctx.notes.create_note(
            uid,
            payload.get('content'),
            payload.get('tags'),
            payload.get('scriptureRefs'),
            payload.get('materialIds'),
            title=payload.get('title'),
            note_type=payload.get('type') or 'note',
            related_sermon_ids=payload.get('relatedSermonIds'),
        )
        return jsonify(note), 201
    except PeerAccessDenied:
        return jsonify({'error': 'Forbidden'}), 403
    except RecordValidationError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        ctx.logger.error(f"Error creating study note for user {uid}: {e}")
        return jsonify({'error': 'Failed to create study note'}), 500


def get_note(ctx, request, note_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        note, error = _load_owned(ctx.notes.get_note, note_id, uid)
        if error:
            return error
        return jsonify(note)
    except Exception as e:
        ctx.logger.error(f"Error loading study note {note_id}: {e}")
        return jsonify({'error': 'Failed to load study note'}), 500


def update_note(ctx, request, note_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    updates, error = _update_payload(request, uid)
    if error:
        return error
    try:
        _, error = _load_owned(ctx.notes.get_note, note_id, uid)
        if error:
            return error
        return jsonify(ctx.notes.update_note(note_id, updates))
    except RecordNotFound:
        return jsonify({'error': 'Not found'}), 404
    except PeerAccessDenied:
        return jsonify({'error': 'Forbidden'}), 403
    except RecordValidationError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        ctx.logger.error(f"Error updating study note {note_id}: {e}")
        return jsonify({'error': 'Failed to update study note'}), 500


def delete_note(ctx, request, note_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        try:
            note = ctx.notes.get_note(note_id)
        except RecordNotFound:
            return jsonify({'success': True})
        if note.get('userId') != uid:
            return jsonify({'error': 'Forbidden'}), 403
        ctx.notes.delete_note(note_id)
        return jsonify({'success': True})
    except RecordNotFound:
        return jsonify({'success': True})
    except Exception as e:
        ctx.logger.error(f"Error deleting study note {note_id}: {e}")
        return jsonify({'error': 'Failed to delete study note'}), 500


def list_materials(ctx, request):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        return jsonify(ctx.materials.list_materials(uid))
    except Exception as e:
        ctx.logger.error(f"Error fetching study materials for user {uid}: {e}")
        return jsonify({'error': 'Failed to fetch materials'}), 500


def create_material(ctx, request):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({'error': 'Invalid payload'}), 400
    if not str(payload.get('title', '') or '').strip():
        return jsonify({'error': 'title is required'}), 400
    try:
        material = ctx.materials.create_material(
            uid,
            payload.get('title'),
            payload.get('type'),
            payload.get('noteIds'),
            description=payload.get('description'),
        )
        return jsonify(material), 201
    except PeerAccessDenied:
        return jsonify({'error': 'Forbidden'}), 403
    except RecordValidationError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        ctx.logger.error(f"Error creating study material for user {uid}: {e}")
        return jsonify({'error': 'Failed to create material'}), 500


def get_material(ctx, request, material_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        material, error = _load_owned(ctx.materials.get_material, material_id, uid)
        if error:
            return error
        return jsonify(material)
    except Exception as e:
        ctx.logger.error(f"Error fetching study material {material_id}: {e}")
        return jsonify({'error': 'Failed to fetch material'}), 500


def update_material(ctx, request, material_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    updates, error = _update_payload(request, uid)
    if error:
        return error
    try:
        _, error = _load_owned(ctx.materials.get_material, material_id, uid)
        if error:
            return error
        return jsonify(ctx.materials.update_material(material_id, updates))
    except RecordNotFound:
        return jsonify({'error': 'Not found'}), 404
    except PeerAccessDenied:
        return jsonify({'error': 'Forbidden'}), 403
    except RecordValidationError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        ctx.logger.error(f"Error updating study material {material_id}: {e}")
        return jsonify({'error': 'Failed to update material'}), 500


def delete_material(ctx, request, material_id):
    uid = request_uid(request, ctx.verify_token)
    if not uid:
        return _unauthorized()
    try:
        try:
            material = ctx.materials.get_material(material_id)
        except RecordNotFound:
            return jsonify({'success': True})
        if material.get('userId') != uid:
            return jsonify({'error': 'Forbidden'}), 403
        ctx.materials.delete_material(material_id)
        return jsonify({'success': True})
    except RecordNotFound:
        return jsonify({'success': True})
    except Exception as e:
        ctx.logger.error(f"Error deleting study material {material_id}: {e}")
        return jsonify({'error': 'Failed to delete material'}), 500
