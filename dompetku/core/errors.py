"""
Error taxonomy shared by the service and the client.

Every error carries a human readable ``message`` that is shown to the user
unchanged. Remote messages are passed through verbatim.
"""


class DompetkuError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(DompetkuError):
    """Input rejected before any remote call was made."""

    status_code = 400


class AuthError(DompetkuError):
    status_code = 401


class NotFoundError(DompetkuError):
    status_code = 404


class StoreError(DompetkuError):
    """The remote store was unreachable or rejected the request."""

    status_code = 503
