"""
CLARK Entities - Domain Specifications

Composable predicates over learning objects, used for in-memory filtering
and for explaining why a draft is not ready for submission.

Usage:
    from domain.specifications import ByStatusSpec, ByLevelSpec, select

    # Simple specification
    spec = ByStatusSpec(Status.RELEASED)

    # Composed specification
    spec = ByStatusSpec(Status.RELEASED) & ByLevelSpec(AcademicLevel.GRADUATE)
    graduate_releases = select(objects, spec)

    # Why does an object fail?
    SubmissionReadySpec().explain(draft)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, TypeVar, Union

from domain.entities import LearningObject
from domain.value_objects import AcademicLevel, Length, Restriction, Status


T = TypeVar("T")


class ISpecification(ABC, Generic[T]):
    """
    Specification pattern for composable queries.

    Specifications encapsulate a predicate that can be combined using
    logical operators (and, or, not).
    """

    failure_message: str = "Specification not satisfied"

    @abstractmethod
    def is_satisfied_by(self, entity: T) -> bool:
        """Check if an entity satisfies this specification."""
        pass

    def explain(self, entity: T) -> List[str]:
        """Reasons the entity fails this specification (empty when satisfied)."""
        return [] if self.is_satisfied_by(entity) else [self.failure_message]

    def and_(self, other: "ISpecification[T]") -> "ISpecification[T]":
        """Combine with AND logic."""
        return AndSpecification(self, other)

    def or_(self, other: "ISpecification[T]") -> "ISpecification[T]":
        """Combine with OR logic."""
        return OrSpecification(self, other)

    def not_(self) -> "ISpecification[T]":
        """Negate this specification."""
        return NotSpecification(self)

    def __and__(self, other: "ISpecification[T]") -> "ISpecification[T]":
        return self.and_(other)

    def __or__(self, other: "ISpecification[T]") -> "ISpecification[T]":
        return self.or_(other)

    def __invert__(self) -> "ISpecification[T]":
        return self.not_()


class AndSpecification(ISpecification[T]):
    """Specification that combines two specs with AND logic."""

    def __init__(self, left: ISpecification[T], right: ISpecification[T]) -> None:
        self._left = left
        self._right = right

    def is_satisfied_by(self, entity: T) -> bool:
        return self._left.is_satisfied_by(entity) and self._right.is_satisfied_by(entity)

    def explain(self, entity: T) -> List[str]:
        return self._left.explain(entity) + self._right.explain(entity)


class OrSpecification(ISpecification[T]):
    """Specification that combines two specs with OR logic."""

    def __init__(self, left: ISpecification[T], right: ISpecification[T]) -> None:
        self._left = left
        self._right = right

    def is_satisfied_by(self, entity: T) -> bool:
        return self._left.is_satisfied_by(entity) or self._right.is_satisfied_by(entity)

    def explain(self, entity: T) -> List[str]:
        if self.is_satisfied_by(entity):
            return []
        return self._left.explain(entity) + self._right.explain(entity)


class NotSpecification(ISpecification[T]):
    """Specification that negates another."""

    def __init__(self, spec: ISpecification[T]) -> None:
        self._spec = spec
        self.failure_message = f"Not: {spec.failure_message}"

    def is_satisfied_by(self, entity: T) -> bool:
        return not self._spec.is_satisfied_by(entity)


class TrueSpecification(ISpecification[T]):
    """Specification satisfied by everything."""

    def is_satisfied_by(self, entity: T) -> bool:
        return True


# =============================================================================
# LEARNING OBJECT SPECIFICATIONS
# =============================================================================


@dataclass
class ByStatusSpec(ISpecification[LearningObject]):
    """Objects in a given workflow state."""
    status: Status

    def __post_init__(self) -> None:
        self.status = Status(self.status)
        self.failure_message = f"Status is not {self.status.value}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return entity.status is self.status


@dataclass
class PublishedSpec(ISpecification[LearningObject]):
    """Objects visible to the public (released)."""
    failure_message = "Learning object is not published"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return entity.published


@dataclass
class ByLengthSpec(ISpecification[LearningObject]):
    length: Length

    def __post_init__(self) -> None:
        self.length = Length(self.length)
        self.failure_message = f"Length is not {self.length.value}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return entity.length is self.length


@dataclass
class ByLevelSpec(ISpecification[LearningObject]):
    """Objects targeting a given academic level (among others)."""
    level: AcademicLevel

    def __post_init__(self) -> None:
        self.level = AcademicLevel(self.level)
        self.failure_message = f"Levels do not include {self.level.value}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return self.level in entity.levels


@dataclass
class ByAuthorSpec(ISpecification[LearningObject]):
    username: str

    def __post_init__(self) -> None:
        self.failure_message = f"Author is not {self.username}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return entity.author.username == self.username


@dataclass
class InCollectionSpec(ISpecification[LearningObject]):
    collection: str

    def __post_init__(self) -> None:
        self.failure_message = f"Learning object is not in collection {self.collection}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return entity.collection == self.collection


@dataclass
class LockedSpec(ISpecification[LearningObject]):
    """Objects carrying a lock, optionally one that restricts a given operation."""
    restriction: Optional[Restriction] = None

    def __post_init__(self) -> None:
        if self.restriction is not None:
            self.restriction = Restriction(self.restriction)
            self.failure_message = f"Learning object is not locked for {self.restriction.value}"
        else:
            self.failure_message = "Learning object is not locked"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        if entity.lock is None:
            return False
        if self.restriction is None:
            return True
        return entity.lock.restricts(self.restriction)


@dataclass
class NameContainsSpec(ISpecification[LearningObject]):
    search_text: str
    case_sensitive: bool = False

    def __post_init__(self) -> None:
        self.failure_message = f"Name does not contain {self.search_text!r}"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        if self.case_sensitive:
            return self.search_text in entity.name
        return self.search_text.lower() in entity.name.lower()


# =============================================================================
# SUBMISSION READINESS
# =============================================================================


class HasDescriptionSpec(ISpecification[LearningObject]):
    failure_message = "Description must not be empty"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return bool(entity.description.strip())


class HasOutcomesSpec(ISpecification[LearningObject]):
    failure_message = "Learning object must have at least one outcome"

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return len(entity.outcomes) > 0


class OutcomeTextsSpec(ISpecification[LearningObject]):
    """Every outcome has non-empty text."""

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return all(outcome.text.strip() for outcome in entity.outcomes)

    def explain(self, entity: LearningObject) -> List[str]:
        return [
            f"Outcome {index} text must not be an empty string"
            for index, outcome in enumerate(entity.outcomes)
            if not outcome.text.strip()
        ]


class ChildrenSubmissionReadySpec(ISpecification[LearningObject]):
    """Every owned child is itself ready for submission."""

    def is_satisfied_by(self, entity: LearningObject) -> bool:
        return not self.explain(entity)

    def explain(self, entity: LearningObject) -> List[str]:
        ready = SubmissionReadySpec()
        reasons: List[str] = []
        for index, child in enumerate(entity.children):
            label = child.name or f"#{index}"
            reasons.extend(f"Child {label}: {reason}" for reason in ready.explain(child))
        return reasons


class SubmissionReadySpec(AndSpecification[LearningObject]):
    """All the rules a draft must meet before it can be submitted for review."""

    def __init__(self) -> None:
        super().__init__(
            HasDescriptionSpec().and_(HasOutcomesSpec()),
            OutcomeTextsSpec().and_(ChildrenSubmissionReadySpec()),
        )


# =============================================================================
# HELPERS
# =============================================================================


def select(
    objects: Iterable[LearningObject],
    spec: ISpecification[LearningObject],
) -> List[LearningObject]:
    """Filter learning objects in memory."""
    return [obj for obj in objects if spec.is_satisfied_by(obj)]


class LearningObjectSpecBuilder:
    """
    Fluent builder for composing learning object specifications.

    Usage:
        spec = (LearningObjectSpecBuilder()
            .with_status(Status.RELEASED)
            .for_level(AcademicLevel.GRADUATE)
            .build())
    """

    def __init__(self) -> None:
        self._specs: List[ISpecification[LearningObject]] = []

    def with_status(self, status: Union[Status, str]) -> "LearningObjectSpecBuilder":
        self._specs.append(ByStatusSpec(status))
        return self

    def published(self) -> "LearningObjectSpecBuilder":
        self._specs.append(PublishedSpec())
        return self

    def of_length(self, length: Union[Length, str]) -> "LearningObjectSpecBuilder":
        self._specs.append(ByLengthSpec(length))
        return self

    def for_level(self, level: Union[AcademicLevel, str]) -> "LearningObjectSpecBuilder":
        self._specs.append(ByLevelSpec(level))
        return self

    def by_author(self, username: str) -> "LearningObjectSpecBuilder":
        self._specs.append(ByAuthorSpec(username))
        return self

    def in_collection(self, collection: str) -> "LearningObjectSpecBuilder":
        self._specs.append(InCollectionSpec(collection))
        return self

    def locked(self, restriction: Optional[Restriction] = None) -> "LearningObjectSpecBuilder":
        self._specs.append(LockedSpec(restriction))
        return self

    def named_like(self, text: str) -> "LearningObjectSpecBuilder":
        self._specs.append(NameContainsSpec(text))
        return self

    def build(self) -> ISpecification[LearningObject]:
        """Build the composite specification."""
        if not self._specs:
            return TrueSpecification()

        result = self._specs[0]
        for spec in self._specs[1:]:
            result = result.and_(spec)
        return result
