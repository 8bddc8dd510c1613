from typing import Dict, Optional


class HackmatesError(Exception):

    status_code = 500
    code = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(HackmatesError, ValueError):
    """Rejected input, raised before anything touches the store."""

    status_code = 422
    code = "validation_error"

    def __init__(self, detail: str = "Invalid input", fields: Optional[Dict[str, str]] = None) -> None:
        super().__init__(detail)
        self.fields = fields or {}


class AuthenticationError(HackmatesError):

    status_code = 401
    code = "not_authenticated"


class PermissionDeniedError(HackmatesError):

    status_code = 403
    code = "permission_denied"


class NotFoundError(HackmatesError):

    status_code = 404
    code = "not_found"


class TransportError(HackmatesError):
    """Network or connection failure talking to the store."""

    status_code = 503
    code = "transport_error"
