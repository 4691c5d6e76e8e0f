"""Authentication utility helpers."""

from firebase_admin import auth


def verify_firebase_token(request, auth_module=auth, logger=None):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    token = auth_header.split('Bearer ', 1)[1].strip()
    if not token:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def request_uid(request, verifier):
    decoded_token = verifier(request)
    if not decoded_token:
        return None
    uid = str(decoded_token.get('uid', '') or '').strip()
    return uid or None
