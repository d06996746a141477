"""
CLARK Entities - Domain Layer

The learning object domain model.

Domain-Driven Design Patterns:
    - Aggregate Root: LearningObject, the consistency boundary for its
      goals, outcomes, levels and children
    - Entities: User, LearningOutcome
    - Value Objects: Material, Metrics, LearningObjectLock, StandardOutcome
    - Domain Events: LearningObjectStatusChanged, LearningObjectSubmitted
    - Specifications: composable predicates over learning objects

Usage:
    from domain import User, LearningOutcome, submit

    author = User("nvisal1", "Nick Visalli", "nick@example.edu")
    learning_object = author.add_object()
    learning_object.name = "Intro to Testing"
    learning_object.description = "Unit testing fundamentals"

    outcome = LearningOutcome(bloom="apply", verb="implement", text="a unit test")
    learning_object.add_outcome(outcome)

    submittable = submit(learning_object)
"""

# Leaves first: entities import outcomes and users
from domain.value_objects import (
    Length,
    Status,
    AcademicLevel,
    Restriction,
    Capability,
    File,
    Url,
    FolderDescription,
    LearningObjectPDF,
    Material,
    Metrics,
    LearningObjectLock,
    OutcomeSource,
    StandardOutcome,
)
from domain.outcomes import (
    LearningGoal,
    AssessmentPlan,
    InstructionalStrategy,
    LearningOutcome,
    SubmittableLearningOutcome,
)
from domain.users import User
from domain.entities import (
    DomainEvent,
    LearningObjectStatusChanged,
    LearningObjectSubmitted,
    AggregateRoot,
    LearningObject,
    SubmittableLearningObject,
)
from domain.specifications import (
    ISpecification,
    ByStatusSpec,
    PublishedSpec,
    ByLengthSpec,
    ByLevelSpec,
    ByAuthorSpec,
    InCollectionSpec,
    LockedSpec,
    NameContainsSpec,
    SubmissionReadySpec,
    LearningObjectSpecBuilder,
    select,
)
from domain.submission import (
    SubmissionReport,
    submission_report,
    submit,
)
from domain.reconstruction import (
    SchemaRevision,
    FieldAlias,
    instantiate,
    instantiate_user,
    instantiate_learning_object,
    instantiate_outcome,
    instantiate_assessment,
    instantiate_strategy,
    instantiate_goal,
)

__all__ = [
    # Value objects
    "Length",
    "Status",
    "AcademicLevel",
    "Restriction",
    "Capability",
    "File",
    "Url",
    "FolderDescription",
    "LearningObjectPDF",
    "Material",
    "Metrics",
    "LearningObjectLock",
    "OutcomeSource",
    "StandardOutcome",
    # Outcomes
    "LearningGoal",
    "AssessmentPlan",
    "InstructionalStrategy",
    "LearningOutcome",
    "SubmittableLearningOutcome",
    # Users
    "User",
    # Aggregate
    "DomainEvent",
    "LearningObjectStatusChanged",
    "LearningObjectSubmitted",
    "AggregateRoot",
    "LearningObject",
    "SubmittableLearningObject",
    # Specifications
    "ISpecification",
    "ByStatusSpec",
    "PublishedSpec",
    "ByLengthSpec",
    "ByLevelSpec",
    "ByAuthorSpec",
    "InCollectionSpec",
    "LockedSpec",
    "NameContainsSpec",
    "SubmissionReadySpec",
    "LearningObjectSpecBuilder",
    "select",
    # Submission
    "SubmissionReport",
    "submission_report",
    "submit",
    # Reconstruction
    "SchemaRevision",
    "FieldAlias",
    "instantiate",
    "instantiate_user",
    "instantiate_learning_object",
    "instantiate_outcome",
    "instantiate_assessment",
    "instantiate_strategy",
    "instantiate_goal",
]
