import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_int(name, default):
    raw = (os.getenv(name, '') or '').strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name, default):
    raw = (os.getenv(name, '') or '').strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """Central config object, read from the environment at load time."""

    flask_secret_key: str = field(default_factory=lambda: os.getenv('FLASK_SECRET_KEY', ''))
    log_level: str = field(default_factory=lambda: (os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper())
    sentry_dsn: str = field(default_factory=lambda: (os.getenv('SENTRY_BACKEND_DSN', '') or '').strip())
    sentry_environment: str = field(
        default_factory=lambda: (os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip()
    )
    sentry_release: str = field(default_factory=lambda: (os.getenv('SENTRY_RELEASE', 'sermon-studies') or 'sermon-studies').strip())
    sentry_traces_sample_rate: float = field(default_factory=lambda: _env_float('SENTRY_TRACES_SAMPLE_RATE', 0.0))
    firebase_credentials: str = field(default_factory=lambda: (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip())
    firebase_credentials_path: str = field(
        default_factory=lambda: (os.getenv('FIREBASE_CREDENTIALS_PATH', 'firebase-credentials.json') or '').strip()
    )
    draft_min_content_length: int = field(default_factory=lambda: _env_int('DRAFT_MIN_CONTENT_LENGTH', 20))
    max_batch_operations: int = field(default_factory=lambda: _env_int('FIRESTORE_MAX_BATCH_OPERATIONS', 500))


def load_config() -> AppConfig:
    config = AppConfig()
    runtime_env = (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()
    is_dev_like = runtime_env in {'development', 'dev', 'local', 'test'}
    if not is_dev_like and not config.flask_secret_key.strip():
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    if not 1 <= config.max_batch_operations <= 500:
        raise RuntimeError('FIRESTORE_MAX_BATCH_OPERATIONS must be between 1 and 500.')
    return config
