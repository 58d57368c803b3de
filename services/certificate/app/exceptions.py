"""Shared domain exception classes for the certificate service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses.
"""


class PreconditionNotMetError(Exception):
    """Raised when the user, the course, or a completed course record is missing."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"Certificate preconditions not met: {detail}")


class CertificateNotFoundError(Exception):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Certificate not found: {identifier}")


class CertificateAccessForbiddenError(Exception):
    """Raised when a user asks for a certificate (or its image token) they do not own."""


class CertificateConflictError(Exception):
    """Raised when no unused certificate number could be inserted after bounded retries.

    A duplicate (user, course) insert is never surfaced: the service re-reads
    and returns the record that won the race.
    """


class UpstreamUploadError(Exception):
    """Raised when the certificate image could not be written to object storage."""

    def __init__(self, key: str = "", reason: str = ""):
        self.key = key
        self.reason = reason
        super().__init__(f"Upload of {key} failed: {reason}")


class SigningKeyNotConfiguredError(Exception):
    """Raised when the certificate token key is missing; signing fails closed."""
