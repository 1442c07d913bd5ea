"""Frustum error taxonomy.

Every failure raised by the pipeline inherits from ``FrustumError`` so
callers can dispatch on the class instead of matching message text.

Categories
----------
- ``ValidationError``:      bad coordinates, name, dataset or format.
  Raised before any I/O; the caller may retry with corrected input.
- ``DataUnavailableError``: an upstream provider returned an error
  payload (or could not be reached). Carries the provider's message.
- ``ParseError``:           a provider payload had an unexpected shape.
- ``CorruptDataError``:     saved Frustum files are missing or unreadable.
- ``FrustumIOError``:       saving the Frustum to disk failed.
"""

from __future__ import annotations


class FrustumError(Exception):
    """Base exception for all Frustum pipeline errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"terrain"``, ``"buildings"``, ``"storage"``).
        code: Machine-readable error code.
    """

    default_stage: str = ""
    default_code: str = "FRUSTUM_ERROR"
    category: str = "frustum"

    def __init__(self, message: str = "", *, stage: str = "", code: str = "") -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        super().__init__(message)

    def to_error_dict(self) -> dict[str, str]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
        }


class ValidationError(FrustumError):
    """Input rejected before any I/O."""

    default_code = "INVALID_INPUT"
    category = "validation"


class DataUnavailableError(FrustumError):
    """Upstream provider returned an error instead of data."""

    default_code = "DATA_UNAVAILABLE"
    category = "data_unavailable"


class ParseError(FrustumError):
    """Provider payload did not have the expected shape."""

    default_code = "PARSE_FAILED"
    category = "parse"


class CorruptDataError(FrustumError):
    """Saved Frustum files are missing, truncated or malformed."""

    default_stage = "storage"
    default_code = "LOAD_FAILED"
    category = "corrupt_data"


class FrustumIOError(FrustumError):
    """Creating the Frustum directory or files failed."""

    default_stage = "storage"
    default_code = "SAVE_FAILED"
    category = "io"
