# Save as: chat_companion/errors.py


class CompanionError(Exception):
    """Base class for everything the companion core raises on purpose."""


class GenerationUnavailable(CompanionError):
    """No role matched and the generative path produced nothing either."""


class ExternalCapabilityFailure(CompanionError):
    """The generative backend errored, timed out or returned junk."""


class GenerationFailed(ExternalCapabilityFailure):
    """Raised only when the generative path failed and fallback is disabled."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class StorageUnavailable(CompanionError):
    """The durable preference store could not be read or written."""


class InvalidFeedback(CompanionError, ValueError):
    """Feedback referencing an unknown role, kind or comment."""
