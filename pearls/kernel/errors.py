"""
Typed failures raised by handlers and services.

The tool dispatcher is the single place these are turned into error
envelopes; the HTTP routes map them to status codes.
"""


class PearlsError(Exception):
    """Base class for expected, caller-reportable failures."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(PearlsError):
    """Malformed or missing input."""

    status_code = 422


class AuthorizationError(PearlsError):
    """The identity lacks the permission the operation requires."""

    status_code = 403


class NotFoundError(PearlsError):
    """A referenced thread or pearl does not exist."""

    status_code = 404


class ConflictError(PearlsError):
    """A uniqueness constraint would be violated."""

    status_code = 409


class UpstreamError(PearlsError):
    """A collaborator (identity provider, embedding API) failed."""

    status_code = 502


class OAuthError(Exception):
    """
    Structured OAuth rejection.

    Rendered as {"error": ..., "error_description": ...}.
    """

    def __init__(self, error: str, description: str, status_code: int = 400):
        super().__init__(description)
        self.error = error
        self.description = description
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.description}
