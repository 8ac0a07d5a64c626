"""
Error taxonomy for SalesDesk.

Every error raised by the engines derives from SalesDeskError and carries the
HTTP status it maps to. `main.py` renders them all as {"error": message}.
"""


class SalesDeskError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SalesDeskError):
    """A required field is missing or a value is invalid."""
    status_code = 400


class AuthenticationError(SalesDeskError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationError(SalesDeskError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(SalesDeskError):
    status_code = 404


class ConflictError(SalesDeskError):
    """Duplicate key. Resolved internally by the workflows that can hit it."""
    status_code = 409


class PersistenceError(SalesDeskError):
    status_code = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(message)
