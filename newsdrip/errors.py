# newsdrip/errors.py
from typing import Optional


class NewsdripError(Exception):
    """Base class for errors raised by the newsletter core"""


class StoreUnavailable(NewsdripError):
    """Persistence layer could not be reached"""


class ValidationFailure(NewsdripError):
    """Input rejected before any state was changed"""


class NotFound(NewsdripError):
    pass


class InvalidTransition(NewsdripError):
    """Requested lifecycle change is not allowed from the current state"""


class AdapterFailure(NewsdripError):
    """A single recipient's send attempt failed.

    Raised by provider code inside a channel adapter and converted to a
    ``failed`` outcome at the adapter boundary.
    """

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(detail or reason)
        self.reason = reason


class PartialAcceptance(NewsdripError):
    """Provider accepted the request but will not deliver without reconfiguration.

    Converted to a ``pending`` outcome at the adapter boundary.
    """

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(detail or reason)
        self.reason = reason
