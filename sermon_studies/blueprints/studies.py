from flask import Blueprint, current_app, request

from sermon_studies.extensions import get_context
from sermon_studies.services import studies_api_service

studies_bp = Blueprint('studies_api', __name__)


@studies_bp.route('/api/studies/notes', methods=['GET'])
def list_study_notes():
    return studies_api_service.list_notes(get_context(current_app), request)


@studies_bp.route('/api/studies/notes', methods=['POST'])
def create_study_note():
    return studies_api_service.create_note(get_context(current_app), request)


@studies_bp.route('/api/studies/notes/<note_id>', methods=['GET'])
def get_study_note(note_id):
    return studies_api_service.get_note(get_context(current_app), request, note_id)


@studies_bp.route('/api/studies/notes/<note_id>', methods=['PUT'])
def update_study_note(note_id):
    return studies_api_service.update_note(get_context(current_app), request, note_id)


@studies_bp.route('/api/studies/notes/<note_id>', methods=['DELETE'])
def delete_study_note(note_id):
    return studies_api_service.delete_note(get_context(current_app), request, note_id)


@studies_bp.route('/api/studies/materials', methods=['GET'])
def list_study_materials():
    return studies_api_service.list_materials(get_context(current_app), request)


@studies_bp.route('/api/studies/materials', methods=['POST'])
def create_study_material():
    return studies_api_service.create_material(get_context(current_app), request)


@studies_bp.route('/api/studies/materials/<material_id>', methods=['GET'])
def get_study_material(material_id):
    return studies_api_service.get_material(get_context(current_app), request, material_id)


@studies_bp.route('/api/studies/materials/<material_id>', methods=['PUT'])
def update_study_material(material_id):
    return studies_api_service.update_material(get_context(current_app), request, material_id)


@studies_bp.route('/api/studies/materials/<material_id>', methods=['DELETE'])
def delete_study_material(material_id):
    return studies_api_service.delete_material(get_context(current_app), request, material_id)
