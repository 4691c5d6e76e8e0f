"""Process logging setup plus the one-line JSON events the services emit."""

import json
import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'

logger = logging.getLogger('sermon_studies')


def _level_number(level):
    if isinstance(level, int):
        return level
    return getattr(logging, str(level or 'INFO').upper(), logging.INFO)


def configure_logging(level='INFO') -> None:
    """Apply ``level`` to the event logger; install a root handler only once."""
    numeric_level = _level_number(level)
    logger.setLevel(numeric_level)
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)


def log_event(level, event, **fields):
    payload = dict(fields, event=event)
    logger.log(level, json.dumps(payload, ensure_ascii=True, default=str, sort_keys=True))
