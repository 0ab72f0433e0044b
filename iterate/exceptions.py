"""
Exception hierarchy for the test synchronization service.

Request-fatal errors (authentication, configuration, malformed payloads) are
raised out of the coordinator and mapped to HTTP codes by the API layer.
Everything raised while a single file is being processed is caught at the
file boundary and recorded as a failed outcome for that file.
"""


class IterateError(Exception):
    """Base exception class for the service."""

    pass


class ConfigurationError(IterateError):
    """A required secret or credential is missing."""

    pass


class AuthenticationError(IterateError):
    """The webhook signature did not match the shared secret."""

    pass


class InvalidEventPayload(IterateError):
    """The webhook body is not JSON or lacks required fields."""

    pass


class CollaboratorUnavailable(IterateError):
    """The hosting or test-authoring service failed, timed out or rate-limited us."""

    pass


class ClassificationDegraded(IterateError):
    """The change heuristic could not classify a diff with confidence."""

    pass


class WriteConflict(IterateError):
    """The stored revision marker moved between reading and writing a file."""

    def __init__(self, path: str, message: str = ""):
        self.path = path
        super().__init__(message or f"Revision conflict while writing {path}")
