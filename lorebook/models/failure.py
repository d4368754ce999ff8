"""
Failure Explanation Envelope.

Defines the response envelope used to communicate explainable failures to
API clients, and the exception types that map onto it.

Error taxonomy:
- Validation results (deck rules) are values, never exceptions
- Import failures abort the whole batch (KnownError subclasses)
- Sync failures stay inside the ledger and surface as a status flag
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    INVALID_INPUT = "invalid_input"
    SERVICE_UNAVAILABLE = "service_unavailable"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    KNOWN_FAILURE = "known_failure"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel):
    """Response envelope for classified failures."""

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    failure: FailureDetail = Field(
        ...,
        description="What went wrong and how to recover",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: missing CSV columns, malformed collection export.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
            ),
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class ImportFormatError(KnownError):
    """
    Raised when a collection export file cannot be parsed at all.

    Aborts the whole import. Per-row problems (unknown card names) are
    counted instead.
    """

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            suggestion="Export the collection again as CSV or TSV with a header row.",
        )


class CollectionImportError(KnownError):
    """Raised when a previously exported collection payload is malformed."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            suggestion="Use a file produced by the collection export.",
        )


class CollectionUnavailableError(KnownError):
    """
    Raised when a collection change is refused because the stored rows
    could not be loaded yet.

    Applying it to an empty ledger would overwrite counts it never saw.
    """

    def __init__(self, user_id: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message=f"Collection for user '{user_id}' could not be loaded",
            detail=detail,
            suggestion="Try again once the collection store is reachable.",
            status_code=503,
        )


class SyncError(Exception):
    """
    Raised by collection stores when a remote operation fails.

    `offline` is True when the store could not be reached at all.
    """

    def __init__(self, message: str, offline: bool = False):
        self.offline = offline
        super().__init__(message)
