"""Error types raised by the study notes and materials layer."""


class StudiesError(Exception):
    """Base class for study record errors.

    Carries an optional context dict so handlers can log the ids involved
    without parsing the message.
    """

    def __init__(self, message, context=None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class RecordNotFound(StudiesError):
    """Update or delete targeted a record id that does not exist."""

    def __init__(self, collection, record_id):
        super().__init__(
            f"{collection}/{record_id} not found",
            {'collection': collection, 'record_id': record_id},
        )
        self.collection = collection
        self.record_id = record_id


class RecordValidationError(StudiesError):
    """Caller supplied fields that cannot be persisted."""


class BackingStoreError(StudiesError):
    """Any I/O failure coming out of Firestore.

    The wrapped Firestore exception is kept as ``__cause__``.
    """


class PeerAccessDenied(StudiesError):
    """A peer id names a record that belongs to another user."""

    def __init__(self, collection, record_id):
        super().__init__(
            f"{collection}/{record_id} belongs to another user",
            {'collection': collection, 'record_id': record_id},
        )
        self.collection = collection
        self.record_id = record_id
