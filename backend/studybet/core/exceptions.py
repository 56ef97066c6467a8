class StudyBetError(Exception):
    """Base exception for the StudyBet application."""

    pass


class InvalidStateError(StudyBetError):
    """Raised when an operation is attempted from a disallowed status."""

    def __init__(self, message: str, required: str | None = None, actual: str | None = None):
        self.required = required
        self.actual = actual
        super().__init__(message)


class ValidationError(StudyBetError):
    """Raised when input is malformed, before any state is touched."""

    pass


class NotFoundError(StudyBetError):
    """Raised when a referenced entity does not exist (or is not visible to the caller)."""

    def __init__(self, kind: str, identifier: object):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class SessionBusyError(StudyBetError):
    """Raised when another request currently holds the lock for a session."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Another operation is in progress for '{key}'")


class CollaboratorError(StudyBetError):
    """Raised by narrative/notification adapters; never escapes the service layer."""

    pass
