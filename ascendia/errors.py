"""
Error taxonomy shared by the stores, services and HTTP layer.
"""

from typing import Optional


class AscendiaError(Exception):
    """Base error; carries the HTTP status the API maps it to."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AscendiaError):
    status_code = 404
    code = "not_found"


class ValidationFailure(AscendiaError):
    status_code = 400
    code = "validation_failed"


class SchemaUnavailableError(AscendiaError):
    """Storage reports that an expected table or column does not exist."""

    status_code = 503
    code = "schema_unavailable"

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "Database schema not initialized. Apply the schema (scripts/init_db.py "
            "or the Supabase SQL migration), then restart the API."
        )


class StorageError(AscendiaError):
    status_code = 500
    code = "storage_failure"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
