import json
import logging

from sermon_studies.logging_config import configure_logging, log_event, logger


def test_configure_logging_applies_level_to_event_logger(monkeypatch):
    monkeypatch.setattr(logger, "level", logger.level)

    configure_logging("debug")
    assert logger.level == logging.DEBUG

    configure_logging("not-a-level")
    assert logger.level == logging.INFO


def test_log_event_emits_one_json_object(caplog):
    with caplog.at_level(logging.INFO, logger="sermon_studies"):
        log_event(logging.INFO, "study_material.deleted", material_id="m1", missing_notes=["ghost"])

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload == {"event": "study_material.deleted", "material_id": "m1", "missing_notes": ["ghost"]}
