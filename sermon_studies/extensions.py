import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

import firebase_admin
import sentry_sdk
from firebase_admin import credentials, firestore
from sentry_sdk.integrations.flask import FlaskIntegration

from sermon_studies.repositories.record_store import FirestoreRecordStore
from sermon_studies.services import auth_service
from sermon_studies.services.materials_service import MaterialService
from sermon_studies.services.notes_service import NoteService
from sermon_studies.services.reference_sync import ReferenceSync

EXTENSION_KEY = 'sermon_studies'


@dataclass
class StudiesContext:
    """Per-app collaborators handed to the study API handlers."""

    notes: NoteService
    materials: MaterialService
    verify_token: Callable[[Any], Any]
    logger: logging.Logger


def init_firestore(config):
    if config.firebase_credentials_path and os.path.exists(config.firebase_credentials_path):
        cred = credentials.Certificate(config.firebase_credentials_path)
    else:
        if not config.firebase_credentials:
            raise RuntimeError('FIREBASE_CREDENTIALS is not set and no credentials file was found.')
        cred = credentials.Certificate(json.loads(config.firebase_credentials))
    if not firebase_admin._apps:
        firebase_admin.initialize_app(cred)
    return firestore.client()


def init_sentry(config) -> bool:
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def build_context(store, config, *, verify_token=None, logger=None) -> StudiesContext:
    logger = logger or logging.getLogger('sermon_studies')
    sync = ReferenceSync(store, max_batch_operations=config.max_batch_operations)
    if verify_token is None:
        def verify_token(request):
            return auth_service.verify_firebase_token(request, logger=logger)
    return StudiesContext(
        notes=NoteService(store, sync, draft_min_length=config.draft_min_content_length),
        materials=MaterialService(store, sync),
        verify_token=verify_token,
        logger=logger,
    )


def init_extensions(app, config, *, store=None, verify_token=None) -> StudiesContext:
    init_sentry(config)
    if store is None:
        store = FirestoreRecordStore(init_firestore(config))
    context = build_context(store, config, verify_token=verify_token)
    app.extensions[EXTENSION_KEY] = context
    return context


def get_context(app) -> StudiesContext:
    return app.extensions[EXTENSION_KEY]
