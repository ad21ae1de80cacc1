"""
Exception taxonomy for the matching core.

Precondition errors are not retryable and usually mean the caller has to
send the user somewhere else (onboarding, back to the deck). Validation
errors are recoverable: re-prompt and keep the rest of the UI state.
Storage errors come from the backing store and mean the side effect was
not applied.
"""


class MuseMatchError(Exception):
    """Base class for every error raised by musematch."""
    pass


class PreconditionError(MuseMatchError):
    pass


class NoCurrentViewerError(PreconditionError):
    """Raised when no viewer is signed in."""
    pass


class DeckNotReadyError(PreconditionError):
    """Raised when the deck is used before it has been loaded."""
    pass


class DeckExhaustedError(PreconditionError):
    """Raised when a decision is made on a deck with no candidates left."""
    pass


class InvalidThreadKeyError(PreconditionError):
    """Raised when a thread key does not point at a known conversation."""
    pass


class SelfMatchError(PreconditionError):
    pass


class OperationInFlightError(PreconditionError):
    """Raised when a call overlaps a still-pending call on the same resource."""
    pass


class ValidationError(MuseMatchError):
    pass


class EmptyMessageError(ValidationError):
    pass


class MessageTooLongError(ValidationError):
    def __init__(self, length: int, limit: int):
        super().__init__(f"Message is {length} characters, limit is {limit}")
        self.length = length
        self.limit = limit


class InvalidDecisionError(ValidationError):
    pass


class StorageError(MuseMatchError):
    """Raised when the backing store cannot be read or written."""
    pass
