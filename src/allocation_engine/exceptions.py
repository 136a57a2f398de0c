"""
Exception hierarchy for the allocation engine.

Only configuration problems are raised to the caller. Malformed holdings and
invalid advisory payloads are recovered locally and recorded as
ProcessingError entries so the host can still render a result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Categorizes the severity of recovered problems."""

    CRITICAL = "critical"
    """Result cannot be trusted; should not happen for recovered problems"""

    WARNING = "warning"
    """Input was altered or dropped to keep going"""

    INFO = "info"
    """Informational; no data was lost"""


@dataclass
class ProcessingError:
    """
    Structured record of a problem the engine recovered from.

    Collected during a run and returned with the analysis so the host can
    surface them without the engine ever raising.
    """

    source: str
    """Stage that recorded the problem (e.g. "holdings", "advisory")"""

    error_type: str
    """Category (e.g. "NON_NUMERIC_VALUE", "INVALID_ADVISORY_ACTION")"""

    message: str
    """Human-readable explanation"""

    severity: ErrorSeverity = ErrorSeverity.WARNING

    context: dict = field(default_factory=dict)
    """Additional context (holding id, entry index, ...)"""

    @classmethod
    def from_exception(
        cls,
        source: str,
        error_type: str,
        exception: Exception,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        context: Optional[dict] = None,
    ) -> "ProcessingError":
        """Build a record from a caught exception."""
        return cls(
            source=source,
            error_type=error_type,
            message=str(exception),
            severity=severity,
            context=context or {},
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "source": self.source,
            "error_type": self.error_type,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


# ============================================================================
# BASE EXCEPTION CLASSES
# ============================================================================

class AllocationEngineException(Exception):
    """
    Base exception for all allocation engine errors.

    Inheriting from this allows catching all engine errors:
        try:
            ...
        except AllocationEngineException as e:
            ...
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__


class DataProcessingError(AllocationEngineException):
    """Base class for errors while loading holdings data."""
    pass


class ValidationError(AllocationEngineException):
    """Base class for data validation failures."""
    pass


class ConfigurationError(AllocationEngineException):
    """Base class for configuration/setup issues."""
    pass


# ============================================================================
# CONCRETE EXCEPTIONS
# ============================================================================

class TargetModelError(ConfigurationError):
    """
    Raised when a target model is invalid.

    Fractions outside [0, 1], fractions not summing to 1.0, or a grouping
    table that points at an unknown or grouped bucket. Invalidates every
    downstream computation, so it is never clamped.

    Example:
        raise TargetModelError("Target fractions sum to 1.2500, expected 1.0")
    """
    pass


class HoldingsReadError(DataProcessingError):
    """
    Raised when a holdings export cannot be read.

    Example:
        raise HoldingsReadError("Holdings file not found: data/holdings.csv")
    """
    pass


class AdvisoryPayloadError(ValidationError):
    """
    Raised internally when an advisory payload fails shape validation.

    Always caught by the insight validator; the rule-based result stays
    authoritative.

    Example:
        raise AdvisoryPayloadError("Advisory payload missing 'actions' array")
    """
    pass
