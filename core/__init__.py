"""
CLARK Entities - Core Module

Foundational pieces shared by every entity:
- Unified error handling (one typed error per invariant)
- Input validation helpers (trimming, e-mail shape, wire timestamps)
- Taxonomy Lookup (read-only Bloom tables, loaded once per process)

Nothing in core depends on the domain package.

Usage:
    from core import get_taxonomy, InvalidBloom

    if "apply" not in get_taxonomy().levels:
        raise InvalidBloom("apply")
"""

from core.errors import (
    ErrorSeverity,
    ErrorContext,
    ClarkError,
    ClarkConfigError,
    ClarkValidationError,
    ReconstructionError,
    InvalidName,
    InvalidDescription,
    InvalidLength,
    InvalidLevel,
    LevelExists,
    InvalidLevels,
    InvalidOutcome,
    InvalidOutcomes,
    InvalidMaterial,
    InvalidMetrics,
    InvalidAuthor,
    InvalidChild,
    InvalidContributor,
    InvalidCollection,
    InvalidStatus,
    InvalidLock,
    InvalidDate,
    InvalidBloom,
    InvalidVerb,
    InvalidText,
    InvalidMapping,
    InvalidAssessmentPlan,
    InvalidInstruction,
    InvalidEmail,
    InvalidUserField,
    classify_error,
)
from core.validation import (
    EMAIL_PATTERN,
    is_blank,
    trimmed,
    is_valid_email,
    next_timestamp,
    to_epoch_millis,
    parse_timestamp,
)
from core.taxonomy import (
    Taxonomy,
    load_taxonomy,
    get_taxonomy,
)

__all__ = [
    # Errors
    "ErrorSeverity",
    "ErrorContext",
    "ClarkError",
    "ClarkConfigError",
    "ClarkValidationError",
    "ReconstructionError",
    "InvalidName",
    "InvalidDescription",
    "InvalidLength",
    "InvalidLevel",
    "LevelExists",
    "InvalidLevels",
    "InvalidOutcome",
    "InvalidOutcomes",
    "InvalidMaterial",
    "InvalidMetrics",
    "InvalidAuthor",
    "InvalidChild",
    "InvalidContributor",
    "InvalidCollection",
    "InvalidStatus",
    "InvalidLock",
    "InvalidDate",
    "InvalidBloom",
    "InvalidVerb",
    "InvalidText",
    "InvalidMapping",
    "InvalidAssessmentPlan",
    "InvalidInstruction",
    "InvalidEmail",
    "InvalidUserField",
    "classify_error",
    # Validation
    "EMAIL_PATTERN",
    "is_blank",
    "trimmed",
    "is_valid_email",
    "next_timestamp",
    "to_epoch_millis",
    "parse_timestamp",
    # Taxonomy
    "Taxonomy",
    "load_taxonomy",
    "get_taxonomy",
]
