"""Error kinds raised by the billing, complaint and tenant services.

Each kind carries the HTTP status the API layer renders it with, so the
exception handlers in ``rentms.main`` can translate them one-to-one into the
``{"success": false, "message": ...}`` response shape.
"""


class RentError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RentError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(RentError):
    """Referenced tenant, bill or complaint does not exist."""

    status_code = 404


class DuplicateError(RentError):
    """A uniqueness constraint would be violated."""

    status_code = 400


class UnexpectedError(RentError):
    status_code = 500
