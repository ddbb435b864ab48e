"""Business-rule outcomes of dispatch operations, returned synchronously to the caller."""


class DispatchError(Exception):
    """Base class; ``error_code`` is the stable identifier clients switch on."""
    error_code = "dispatch_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class NotFoundError(DispatchError):
    """The job, bid or escrow does not exist."""
    error_code = "not_found"


class AlreadyTakenError(DispatchError):
    """The job was already taken, cancelled or closed."""
    error_code = "already_taken"


class DeadlinePassedError(DispatchError):
    """The quick-book acceptance deadline has passed."""
    error_code = "deadline_passed"


class UnauthorizedError(DispatchError):
    """The actor is not allowed to perform this operation."""
    error_code = "unauthorized"


class DuplicateBidError(DispatchError):
    """This provider already bid on the job."""
    error_code = "duplicate_bid"


class InvalidTransitionError(DispatchError):
    """The requested state change is not legal from the current state."""
    error_code = "invalid_transition"


class DispatchValidationError(DispatchError):
    """The input is malformed or out of range."""
    error_code = "validation_error"
