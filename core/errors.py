"""
CLARK Entities - Unified Error Handling

Provides the error hierarchy used by every entity in the domain layer.

Features:
- Hierarchical exception classes with context preservation
- Error severity levels for prioritized handling
- One typed validation error per invariant, with a stable error code
- OpenTelemetry integration for error tracing
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }

    @classmethod
    def from_current_span(
        cls,
        operation: str,
        component: str,
        **kwargs: Any
    ) -> "ErrorContext":
        """Create context from current OpenTelemetry span."""
        span = trace.get_current_span()
        trace_id = None
        span_id = None

        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                trace_id = format(ctx.trace_id, "032x")
                span_id = format(ctx.span_id, "016x")

        return cls(
            operation=operation,
            component=component,
            trace_id=trace_id,
            span_id=span_id,
            stack_trace=traceback.format_exc(),
            **kwargs
        )


class ClarkError(Exception):
    """
    Base exception for all CLARK entity errors.

    Provides:
    - Structured error context
    - Severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "CLARK_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            span.set_attribute("error.recoverable", self.recoverable)
            if self.context:
                span.set_attribute("error.component", self.context.component)
                span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (component: {self.context.component})")
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)

    def with_context(self, **kwargs: Any) -> "ClarkError":
        """Add additional context to the error."""
        if self.context:
            self.context.metadata.update(kwargs)
        else:
            self.context = ErrorContext(
                operation="unknown",
                component="unknown",
                metadata=kwargs
            )
        return self


class ClarkConfigError(ClarkError):
    """Configuration and taxonomy loading errors."""

    error_code = "CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.actual_value = actual_value


class ClarkValidationError(ClarkError, ValueError):
    """An entity invariant was violated by a mutation or a persisted value."""

    error_code = "VALIDATION_ERROR"
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        actual_value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.actual_value = actual_value


class ReconstructionError(ClarkError):
    """A persisted property bag could not be rebuilt into an entity."""

    error_code = "RECONSTRUCTION_ERROR"

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.entity_type = entity_type


# =============================================================================
# LEARNING OBJECT ERRORS
# =============================================================================


class InvalidName(ClarkValidationError):
    error_code = "INVALID_NAME"

    def __init__(self, name: Any = None, **kwargs: Any):
        super().__init__("Name must be defined", field_name="name", actual_value=name, **kwargs)


class InvalidDescription(ClarkValidationError):
    error_code = "INVALID_DESCRIPTION"

    def __init__(self, description: Any = None, submittable: bool = False, **kwargs: Any):
        message = (
            "Description must not be empty"
            if submittable
            else "Description must be defined"
        )
        super().__init__(message, field_name="description", actual_value=description, **kwargs)


class InvalidLength(ClarkValidationError):
    error_code = "INVALID_LENGTH"

    def __init__(self, length: Any = None, **kwargs: Any):
        if not length:
            message = "Length must be defined"
        else:
            message = f"{length} is not a valid length"
        super().__init__(message, field_name="length", actual_value=length, **kwargs)


class InvalidLevel(ClarkValidationError):
    error_code = "INVALID_LEVEL"

    def __init__(self, level: Any = None, **kwargs: Any):
        super().__init__(
            f"{level} is not a valid academic level",
            field_name="levels",
            actual_value=level,
            **kwargs,
        )


class LevelExists(ClarkValidationError):
    error_code = "LEVEL_EXISTS"

    def __init__(self, level: Any = None, **kwargs: Any):
        super().__init__(
            f"{level} has already been added to this learning object",
            field_name="levels",
            actual_value=level,
            **kwargs,
        )


class InvalidLevels(ClarkValidationError):
    error_code = "INVALID_LEVELS"

    def __init__(self, levels: Any = None, **kwargs: Any):
        super().__init__(
            "Levels must contain at least one valid academic level",
            field_name="levels",
            actual_value=levels,
            **kwargs,
        )


class InvalidOutcome(ClarkValidationError):
    error_code = "INVALID_OUTCOME"

    def __init__(self, outcome: Any = None, **kwargs: Any):
        super().__init__(
            "Outcome must be a valid learning outcome",
            field_name="outcomes",
            actual_value=outcome,
            **kwargs,
        )


class InvalidOutcomes(ClarkValidationError):
    error_code = "INVALID_OUTCOMES"

    def __init__(self, outcomes: Any = None, **kwargs: Any):
        super().__init__(
            "Learning object must have at least one outcome",
            field_name="outcomes",
            actual_value=outcomes,
            **kwargs,
        )


class InvalidMaterial(ClarkValidationError):
    error_code = "INVALID_MATERIAL"

    def __init__(self, material: Any = None, **kwargs: Any):
        super().__init__("Materials must be defined", field_name="materials", actual_value=material, **kwargs)


class InvalidMetrics(ClarkValidationError):
    error_code = "INVALID_METRICS"

    def __init__(self, metrics: Any = None, reason: str = "Metrics must be defined", **kwargs: Any):
        super().__init__(reason, field_name="metrics", actual_value=metrics, **kwargs)


class InvalidAuthor(ClarkValidationError):
    error_code = "INVALID_AUTHOR"

    def __init__(self, author: Any = None, **kwargs: Any):
        super().__init__("Author must be a valid user", field_name="author", actual_value=author, **kwargs)


class InvalidChild(ClarkValidationError):
    error_code = "INVALID_CHILD"

    def __init__(self, child: Any = None, **kwargs: Any):
        super().__init__(
            "Child must be a valid learning object",
            field_name="children",
            actual_value=child,
            **kwargs,
        )


class InvalidContributor(ClarkValidationError):
    error_code = "INVALID_CONTRIBUTOR"

    def __init__(self, contributor: Any = None, **kwargs: Any):
        super().__init__(
            "Contributor must be a valid user",
            field_name="contributors",
            actual_value=contributor,
            **kwargs,
        )


class InvalidCollection(ClarkValidationError):
    error_code = "INVALID_COLLECTION"

    def __init__(self, collection: Any = None, **kwargs: Any):
        super().__init__("Collection must be defined", field_name="collection", actual_value=collection, **kwargs)


class InvalidStatus(ClarkValidationError):
    error_code = "INVALID_STATUS"

    def __init__(self, status: Any = None, **kwargs: Any):
        super().__init__(f"{status} is not a valid status", field_name="status", actual_value=status, **kwargs)


class InvalidLock(ClarkValidationError):
    error_code = "INVALID_LOCK"

    def __init__(self, value: Any = None, **kwargs: Any):
        super().__init__(f"{value} is not a valid lock restriction", field_name="lock", actual_value=value, **kwargs)


class InvalidDate(ClarkValidationError):
    error_code = "INVALID_DATE"

    def __init__(self, value: Any = None, field_name: str = "date", **kwargs: Any):
        super().__init__(f"{value} is not a valid timestamp", field_name=field_name, actual_value=value, **kwargs)


# =============================================================================
# LEARNING OUTCOME ERRORS
# =============================================================================


class InvalidBloom(ClarkValidationError):
    error_code = "INVALID_BLOOM"

    def __init__(self, bloom: Any = None, **kwargs: Any):
        super().__init__(f"{bloom} is not a valid Bloom taxon.", field_name="bloom", actual_value=bloom, **kwargs)


class InvalidVerb(ClarkValidationError):
    error_code = "INVALID_VERB"

    def __init__(self, bloom: Any = None, verb: Any = None, **kwargs: Any):
        super().__init__(
            f"{verb} is not a valid verb for the {bloom} taxon.",
            field_name="verb",
            actual_value=verb,
            **kwargs,
        )


class InvalidText(ClarkValidationError):
    error_code = "INVALID_TEXT"

    def __init__(self, text: Any = None, submittable: bool = False, **kwargs: Any):
        message = "Text must not be an empty string." if submittable else "Text must be defined."
        super().__init__(message, field_name="text", actual_value=text, **kwargs)


class InvalidMapping(ClarkValidationError):
    error_code = "INVALID_MAPPING"

    def __init__(self, mapping: Any = None, **kwargs: Any):
        super().__init__("Mapping must be an outcome", field_name="mappings", actual_value=mapping, **kwargs)


class InvalidAssessmentPlan(ClarkValidationError):
    error_code = "INVALID_ASSESSMENT_PLAN"

    def __init__(self, bloom: Any = None, plan: Any = None, **kwargs: Any):
        super().__init__(
            f"{plan} is not a valid assessment plan for the {bloom} taxon",
            field_name="plan",
            actual_value=plan,
            **kwargs,
        )


class InvalidInstruction(ClarkValidationError):
    error_code = "INVALID_INSTRUCTION"

    def __init__(self, bloom: Any = None, instruction: Any = None, **kwargs: Any):
        super().__init__(
            f"{instruction} is not a valid instructional strategy for the {bloom} taxon",
            field_name="instruction",
            actual_value=instruction,
            **kwargs,
        )


# =============================================================================
# USER ERRORS
# =============================================================================


class InvalidEmail(ClarkValidationError):
    error_code = "INVALID_EMAIL"

    def __init__(self, email: Any = None, **kwargs: Any):
        super().__init__(f"{email} is not a valid email address", field_name="email", actual_value=email, **kwargs)


class InvalidUserField(ClarkValidationError):
    error_code = "INVALID_USER_FIELD"

    def __init__(self, field_name: str, value: Any = None, **kwargs: Any):
        super().__init__(f"User {field_name} must be defined", field_name=field_name, actual_value=value, **kwargs)


# Error mapping for automatic classification
ERROR_TYPE_MAP: Dict[Type[Exception], Type[ClarkError]] = {
    KeyError: ReconstructionError,
    TypeError: ReconstructionError,
    ValueError: ClarkValidationError,
}


def classify_error(error: Exception) -> ClarkError:
    """Classify a generic exception into the appropriate ClarkError type."""
    if isinstance(error, ClarkError):
        return error
    for error_type, clark_type in ERROR_TYPE_MAP.items():
        if isinstance(error, error_type):
            return clark_type(
                message=str(error),
                cause=error,
            )
    return ClarkError(
        message=str(error),
        cause=error,
    )
