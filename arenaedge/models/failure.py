"""
Failure taxonomy for the draft pipeline.

Three families of problems come out of self-reported arena data:

- Data integrity issues: orphaned keys, incomplete decks, missing
  outcomes. Always filtered and counted, never fatal.
- Insufficient samples: a swing bucket below the minimum size. Yields
  "absent" on the normal path; only strict accessors raise.
- Configuration errors: invalid era window, unknown class, empty feature
  set. Fatal to the current pipeline instance only.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of failure types."""

    DATA_INTEGRITY = "data_integrity"
    INSUFFICIENT_SAMPLE = "insufficient_sample"
    CONFIGURATION = "configuration"
    SCHEMA = "schema"


class IntegrityIssue(str, Enum):
    """Reasons a raw row is dropped during loading."""

    # Cards
    NON_DRAFTABLE_CARD = "non_draftable_card"

    # Any table: a key column is missing or not an integer
    MISSING_KEY = "missing_key"

    # Runs
    DUPLICATE_RUN = "duplicate_run"
    MISSING_OUTCOME = "missing_outcome"
    EARLY_RETIREMENT = "early_retirement"
    OUTCOME_OUT_OF_RANGE = "outcome_out_of_range"
    UNKNOWN_CLASS = "unknown_class"
    OUTSIDE_ERA = "outside_era"
    INCOMPLETE_DECK = "incomplete_deck"

    # Draft events
    ORPHANED_RUN = "orphaned_run"
    ORPHANED_CARD = "orphaned_card"
    INVALID_ROUND = "invalid_round"


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the pipeline knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class ConfigurationError(KnownError):
    """Raised when a pipeline instance is configured with invalid parameters."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(kind=FailureKind.CONFIGURATION, message=message, detail=detail)


class InsufficientSampleError(KnownError):
    """Raised by strict accessors when a sample is below the minimum size."""

    def __init__(self, sample_size: int, minimum: int, detail: str | None = None):
        self.sample_size = sample_size
        self.minimum = minimum
        super().__init__(
            kind=FailureKind.INSUFFICIENT_SAMPLE,
            message=f"Sample of {sample_size} is below the minimum of {minimum}",
            detail=detail,
        )


class SchemaValidationError(KnownError):
    """Raised when an input table doesn't match the expected schema."""

    def __init__(self, table: str, missing: list[str]):
        self.table = table
        self.missing = missing
        super().__init__(
            kind=FailureKind.SCHEMA,
            message=f"Missing required columns in {table} table: {missing}",
        )


class DataIntegrityWarning(UserWarning):
    """Emitted when noisy source rows were filtered out during loading."""
