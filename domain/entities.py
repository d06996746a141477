"""
CLARK Entities - Domain Entities

The learning object aggregate root, its domain events, and the submittable
refinement used when content is proposed for review.

Design Principles:
    - The learning object is the consistency boundary for its outcomes,
      goals, levels and owned children
    - Every mutator validates first and raises a typed ClarkValidationError;
      nothing is silently defaulted
    - Content mutations refresh the last-modified ``date``
    - Status changes are recorded as domain events
"""
from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union
from uuid import UUID, uuid4

from core.errors import (
    InvalidAuthor,
    InvalidChild,
    InvalidCollection,
    InvalidContributor,
    InvalidDescription,
    InvalidLength,
    InvalidLevel,
    InvalidLevels,
    InvalidLock,
    InvalidMaterial,
    InvalidMetrics,
    InvalidName,
    InvalidOutcome,
    InvalidOutcomes,
    InvalidStatus,
    LevelExists,
)
from core.taxonomy import get_taxonomy
from core.validation import is_blank, next_timestamp, to_epoch_millis
from domain.outcomes import LearningGoal, LearningOutcome, SubmittableLearningOutcome
from domain.users import User
from domain.value_objects import (
    EMPTY_MATERIAL,
    AcademicLevel,
    Capability,
    Length,
    LearningObjectLock,
    Material,
    Metrics,
    Status,
    coerce_enum,
    empty_levels,
)

logger = logging.getLogger("clark.entities")


# =============================================================================
# DOMAIN EVENTS - Signals of significant state changes
# =============================================================================


@dataclass(frozen=True)
class DomainEvent:
    """
    Base class for domain events.

    Domain events are immutable records of significant occurrences in the
    life of an aggregate, collected until the application layer drains them.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: Optional[str] = None

    @property
    def event_type(self) -> str:
        """Return the event type name."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "data": self._event_data(),
        }

    def _event_data(self) -> Dict[str, Any]:
        """Override in subclasses to provide event-specific data."""
        return {}


@dataclass(frozen=True)
class LearningObjectStatusChanged(DomainEvent):
    """A learning object moved through the publication workflow."""
    name: str = ""
    old_status: str = ""
    new_status: str = ""

    @property
    def published(self) -> bool:
        return self.new_status == Status.RELEASED.value

    def _event_data(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "published": self.published,
        }


@dataclass(frozen=True)
class LearningObjectSubmitted(DomainEvent):
    """A learning object passed the submission rules."""
    name: str = ""
    outcome_count: int = 0
    child_count: int = 0

    def _event_data(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome_count": self.outcome_count,
            "child_count": self.child_count,
        }


# =============================================================================
# BASE CLASSES
# =============================================================================


class AggregateRoot(ABC):
    """
    Base class for aggregate roots.

    Aggregate roots are the entry point to a cluster of domain objects.
    They maintain invariants across the aggregate boundary and emit
    domain events when significant state changes occur.
    """

    def __init__(self) -> None:
        self._domain_events: List[DomainEvent] = []
        self._version: int = 0
        self._last_event_at: Optional[datetime] = None
        self._invariant_violations: List[str] = []

    @property
    def id(self) -> Optional[str]:
        """Storage identity, assigned by the persistence layer."""
        return None

    @property
    def entity_type(self) -> str:
        return self.__class__.__name__

    # =========================================================================
    # EVENTS AND VERSIONING
    # =========================================================================

    @property
    def version(self) -> int:
        """Number of mutations applied since construction."""
        return self._version

    @property
    def domain_events(self) -> List[DomainEvent]:
        """Pending domain events to be dispatched."""
        return list(self._domain_events)

    @property
    def has_pending_events(self) -> bool:
        return len(self._domain_events) > 0

    def add_domain_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)
        self._last_event_at = event.occurred_at

    def clear_domain_events(self) -> List[DomainEvent]:
        """Clear and return all pending domain events."""
        events = self._domain_events
        self._domain_events = []
        return events

    def increment_version(self) -> None:
        self._version += 1

    # =========================================================================
    # SELF-MONITORING
    # =========================================================================

    @property
    def is_healthy(self) -> bool:
        self._validate_invariants()
        return len(self._invariant_violations) == 0

    @property
    def invariant_violations(self) -> List[str]:
        """Any invariants that are currently violated."""
        self._validate_invariants()
        return list(self._invariant_violations)

    def _validate_invariants(self) -> None:
        """Override in subclasses to add domain-specific invariant checks."""
        self._invariant_violations = []

    def _add_invariant_violation(self, violation: str) -> None:
        if violation not in self._invariant_violations:
            self._invariant_violations.append(violation)

    def introspect(self) -> Dict[str, Any]:
        """Diagnostic view of the aggregate's current state."""
        self._validate_invariants()
        return {
            "entity_type": self.entity_type,
            "id": self.id,
            "version": self._version,
            "is_healthy": not self._invariant_violations,
            "invariant_violations": list(self._invariant_violations),
            "pending_events": len(self._domain_events),
            "last_event_at": self._last_event_at.isoformat() if self._last_event_at else None,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AggregateRoot):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)


# =============================================================================
# LEARNING OBJECT - The aggregate root
# =============================================================================


class LearningObject(AggregateRoot):
    """
    An authorable unit of instruction.

    A learning object is created blank, by a User or standalone, and filled
    in through its mutators. It owns its goals, outcomes and children;
    contributors are plain references.

    Invariants:
        - name is non-empty after trimming once it has been set
        - description is defined (non-empty for submittable objects)
        - length and every level are registered; levels are unique and
          never empty
        - published is True exactly when status is RELEASED
        - submittable objects always hold at least one outcome
    """

    def __init__(
        self,
        author: Optional[User] = None,
        name: str = "",
        *,
        id: Optional[str] = None,
        capability: Capability = Capability.DRAFT,
    ) -> None:
        super().__init__()
        if author is not None and not isinstance(author, User):
            raise InvalidAuthor(author)

        self._id = id
        self._capability = capability
        self._author = author if author is not None else User()
        self._name = ""
        self._description = ""
        self._date: datetime = next_timestamp(None)
        self._length = Length.NANOMODULE
        self._levels: List[AcademicLevel] = empty_levels()
        self._goals: List[LearningGoal] = []
        self._outcomes: List[LearningOutcome] = []
        self._outcome_tags: Set[int] = set()
        self._next_outcome_tag = 0
        self._materials: Material = EMPTY_MATERIAL
        self._metrics = Metrics()
        self._status = Status.UNRELEASED
        self._children: List[LearningObject] = []
        self._parent: Optional[LearningObject] = None
        self._child_references: List[str] = []
        self._contributors: List[User] = []
        self._lock: Optional[LearningObjectLock] = None
        self._collection = ""
        self.extensions: Dict[str, Any] = {}

        if name:
            self.name = name

    def _touch(self) -> None:
        """Record a content mutation."""
        self._date = next_timestamp(self._date)
        self.increment_version()

    # =========================================================================
    # IDENTITY AND CAPABILITY
    # =========================================================================

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def capability(self) -> Capability:
        return self._capability

    @property
    def is_submittable(self) -> bool:
        return self._capability is Capability.SUBMITTABLE

    @property
    def author(self) -> User:
        return self._author

    # =========================================================================
    # SCALAR FIELDS
    # =========================================================================

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        if is_blank(name):
            raise InvalidName(name)
        self._name = str(name).strip()
        self._touch()

    @property
    def description(self) -> str:
        return self._description

    @description.setter
    def description(self, description: str) -> None:
        if description is None:
            raise InvalidDescription(description, submittable=self.is_submittable)
        value = str(description).strip()
        if self.is_submittable and not value:
            raise InvalidDescription(description, submittable=True)
        self._description = value
        self._touch()

    @property
    def date(self) -> datetime:
        """Last-modified timestamp."""
        return self._date

    @property
    def length(self) -> Length:
        return self._length

    @length.setter
    def length(self, length: Union[Length, str]) -> None:
        member = coerce_enum(Length, length)
        if member is None or member.value not in get_taxonomy().lengths:
            raise InvalidLength(length)
        self._length = member
        self._touch()

    @property
    def collection(self) -> str:
        return self._collection

    @collection.setter
    def collection(self, collection: str) -> None:
        if collection is None:
            raise InvalidCollection(collection)
        self._collection = str(collection).strip()
        self._touch()

    @property
    def lock(self) -> Optional[LearningObjectLock]:
        return self._lock

    @lock.setter
    def lock(self, lock: Optional[LearningObjectLock]) -> None:
        if lock is not None and not isinstance(lock, LearningObjectLock):
            raise InvalidLock(lock)
        self._lock = lock
        self._touch()

    @property
    def materials(self) -> Material:
        return self._materials

    @materials.setter
    def materials(self, materials: Material) -> None:
        if not isinstance(materials, Material):
            raise InvalidMaterial(materials)
        self._materials = materials
        self._touch()

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @metrics.setter
    def metrics(self, metrics: Metrics) -> None:
        # Counters belong to the surrounding system; no date refresh
        if not isinstance(metrics, Metrics):
            raise InvalidMetrics(metrics)
        self._metrics = metrics

    # =========================================================================
    # PUBLICATION STATE MACHINE
    # =========================================================================

    @property
    def status(self) -> Status:
        return self._status

    @status.setter
    def status(self, status: Union[Status, str]) -> None:
        member = coerce_enum(Status, status)
        if member is None:
            raise InvalidStatus(status)
        old_status = self._status
        self._status = member
        self._touch()
        if member is not old_status:
            logger.debug("Learning object %r: %s -> %s", self._name, old_status.value, member.value)
            self.add_domain_event(LearningObjectStatusChanged(
                aggregate_id=self._id,
                name=self._name,
                old_status=old_status.value,
                new_status=member.value,
            ))

    @property
    def published(self) -> bool:
        """Derived from status; True exactly when RELEASED."""
        return self._status is Status.RELEASED

    def publish(self) -> None:
        self.status = Status.RELEASED

    def unpublish(self) -> None:
        """Withdraw a released object; other states are left as they are."""
        if self._status is Status.RELEASED:
            self.status = Status.UNRELEASED

    # =========================================================================
    # ACADEMIC LEVELS
    # =========================================================================

    @property
    def levels(self) -> Tuple[AcademicLevel, ...]:
        return tuple(self._levels)

    def add_level(self, level: Union[AcademicLevel, str]) -> int:
        member = coerce_enum(AcademicLevel, level)
        if member is not None and member in self._levels:
            raise LevelExists(member.value)
        if member is None:
            raise InvalidLevel(level)
        self._levels.append(member)
        self._touch()
        return len(self._levels) - 1

    def remove_level(self, index: int) -> AcademicLevel:
        if len(self._levels) <= 1:
            raise InvalidLevels(self.levels)
        level = self._levels.pop(index)
        self._touch()
        return level

    def _replace_levels(self, levels: List[Any]) -> None:
        """Swap in a complete level list, validated as a whole."""
        members: List[AcademicLevel] = []
        for level in levels:
            member = coerce_enum(AcademicLevel, level)
            if member is None:
                raise InvalidLevel(level)
            if member in members:
                raise LevelExists(member.value)
            members.append(member)
        if not members:
            raise InvalidLevels(levels)
        self._levels = members
        self._touch()

    # =========================================================================
    # GOALS
    # =========================================================================

    @property
    def goals(self) -> Tuple[LearningGoal, ...]:
        return tuple(self._goals)

    def add_goal(self, goal: Union[LearningGoal, str] = "") -> int:
        if not isinstance(goal, LearningGoal):
            goal = LearningGoal(goal)
        self._goals.append(goal)
        self._touch()
        return len(self._goals) - 1

    def remove_goal(self, index: int) -> LearningGoal:
        goal = self._goals.pop(index)
        self._touch()
        return goal

    # =========================================================================
    # OUTCOMES
    # =========================================================================

    @property
    def outcomes(self) -> Tuple[LearningOutcome, ...]:
        return tuple(self._outcomes)

    def add_outcome(self, outcome: Optional[LearningOutcome] = None) -> int:
        """
        Attach an outcome (a blank one if none is given) and return its index.

        Submittable objects copy draft outcomes into submittable ones, so
        the non-empty text rule applies to everything they hold.
        """
        if outcome is None:
            outcome = LearningOutcome()
        elif not isinstance(outcome, LearningOutcome) or outcome.owner is not None:
            raise InvalidOutcome(outcome)
        if self.is_submittable and not outcome.is_submittable:
            outcome = SubmittableLearningOutcome(outcome)

        self._attach_outcome(outcome)
        self._touch()
        return len(self._outcomes) - 1

    def remove_outcome(self, index: int) -> LearningOutcome:
        if self.is_submittable and len(self._outcomes) <= 1:
            raise InvalidOutcomes(self.outcomes)
        outcome = self._outcomes.pop(index)
        self._outcome_tags.discard(outcome.tag)
        outcome._detach()
        self._touch()
        return outcome

    def _attach_outcome(self, outcome: LearningOutcome, keep_tag: bool = False) -> None:
        """
        Append an outcome and give it a tag unique within this object.

        Tags come from a per-object counter. A persisted tag is kept when it
        does not collide with one already attached. An outcome belongs to at
        most one learning object.
        """
        if outcome.owner is not None:
            raise InvalidOutcome(outcome)
        tag = outcome.tag
        if not (keep_tag and tag is not None and tag not in self._outcome_tags):
            tag = self._next_outcome_tag
        self._next_outcome_tag = max(self._next_outcome_tag, tag + 1)
        self._outcome_tags.add(tag)
        outcome._attach(self, tag)
        self._outcomes.append(outcome)

    # =========================================================================
    # CHILDREN AND CONTRIBUTORS
    # =========================================================================

    @property
    def children(self) -> Tuple["LearningObject", ...]:
        return tuple(self._children)

    @property
    def child_references(self) -> Tuple[str, ...]:
        """Identifiers of children the application layer has yet to resolve."""
        return tuple(self._child_references)

    @property
    def parent(self) -> Optional["LearningObject"]:
        """The learning object that owns this one as a child, if any."""
        return self._parent

    def iter_descendants(self) -> Iterator["LearningObject"]:
        """Depth-first walk over every owned child, grandchild, ..."""
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def add_child(self, child: "LearningObject") -> int:
        if not isinstance(child, LearningObject):
            raise InvalidChild(child)
        if child is self or any(d is self for d in child.iter_descendants()):
            raise InvalidChild(child)
        if child.parent is not None:
            raise InvalidChild(child)
        if self.is_submittable and not child.is_submittable:
            child = SubmittableLearningObject(child)
        child._parent = self
        self._children.append(child)
        self._touch()
        return len(self._children) - 1

    def remove_child(self, index: int) -> "LearningObject":
        child = self._children.pop(index)
        child._parent = None
        self._touch()
        return child

    def add_child_reference(self, identifier: str) -> int:
        if is_blank(identifier):
            raise InvalidChild(identifier)
        self._child_references.append(str(identifier))
        return len(self._child_references) - 1

    @property
    def contributors(self) -> Tuple[User, ...]:
        return tuple(self._contributors)

    def add_contributor(self, contributor: User) -> int:
        if not isinstance(contributor, User):
            raise InvalidContributor(contributor)
        self._contributors.append(contributor)
        self._touch()
        return len(self._contributors) - 1

    def remove_contributor(self, index: int) -> User:
        contributor = self._contributors.pop(index)
        self._touch()
        return contributor

    # =========================================================================
    # SELF-AWARENESS
    # =========================================================================

    def _validate_invariants(self) -> None:
        self._invariant_violations = []

        if self._name != self._name.strip():
            self._add_invariant_violation("Name must be trimmed")
        if not self._levels:
            self._add_invariant_violation("Levels must not be empty")
        if len(set(self._levels)) != len(self._levels):
            self._add_invariant_violation("Levels must be unique")

        taxonomy = get_taxonomy()
        for outcome in self._outcomes:
            if outcome.bloom not in taxonomy.levels:
                self._add_invariant_violation(f"Outcome {outcome.tag} has unregistered bloom {outcome.bloom}")
            for assessment in outcome.assessments:
                if assessment.is_stale:
                    self._add_invariant_violation(
                        f"Assessment {assessment.plan!r} is not registered for {assessment.source_bloom}"
                    )
            for strategy in outcome.strategies:
                if strategy.is_stale:
                    self._add_invariant_violation(
                        f"Strategy {strategy.instruction!r} is not registered for {strategy.source_bloom}"
                    )

        if self.is_submittable:
            if not self._description:
                self._add_invariant_violation("Submittable description must not be empty")
            if not self._outcomes:
                self._add_invariant_violation("Submittable object must have at least one outcome")

    def introspect(self) -> Dict[str, Any]:
        base = super().introspect()
        base.update({
            "name": self._name,
            "capability": self._capability.value,
            "status": self._status.value,
            "published": self.published,
            "outcome_count": len(self._outcomes),
            "child_count": len(self._children),
            "unresolved_children": len(self._child_references),
            "date": to_epoch_millis(self._date),
        })
        return base

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the object graph to its persisted property-bag shape."""
        result = dict(self.extensions)
        if self._id is not None:
            result["id"] = self._id
        result.update({
            "author": self._author.to_dict(),
            "name": self._name,
            "description": self._description,
            "date": to_epoch_millis(self._date),
            "length": self._length.value,
            "levels": [level.value for level in self._levels],
            "goals": [goal.to_dict() for goal in self._goals],
            "outcomes": [outcome.to_dict() for outcome in self._outcomes],
            "materials": self._materials.to_dict(),
            "metrics": self._metrics.to_dict(),
            "published": self.published,
            "status": self._status.value,
            "children": [child.to_dict() for child in self._children] + list(self._child_references),
            "contributors": [contributor.to_dict() for contributor in self._contributors],
            "collection": self._collection,
        })
        if self._lock is not None:
            result["lock"] = self._lock.to_dict()
        return result

    @classmethod
    def instantiate(cls, bag: Mapping[str, Any]) -> "LearningObject":
        from domain.reconstruction import instantiate_learning_object

        return instantiate_learning_object(bag)

    def __repr__(self) -> str:
        return (
            f"{self.entity_type}(id={self._id!r}, name={self._name!r}, "
            f"status={self._status.value!r})"
        )


class SubmittableLearningObject(LearningObject):
    """
    A learning object that satisfies the submission rules.

    Built by copying a draft: the description must be non-empty, there must
    be at least one outcome, and every outcome and child is copied into its
    submittable form. The draft itself is left untouched.
    """

    def __init__(self, source: LearningObject) -> None:
        if not isinstance(source, LearningObject):
            raise InvalidChild(source)
        super().__init__(author=source.author, id=source.id, capability=Capability.SUBMITTABLE)

        self.description = source.description
        if not source.outcomes:
            raise InvalidOutcomes(source.outcomes)

        self._name = source.name
        self._length = source.length
        self._levels = list(source.levels)
        self._goals = [goal.copy() for goal in source.goals]
        for outcome in source.outcomes:
            self._attach_outcome(SubmittableLearningOutcome(outcome), keep_tag=True)
        self._next_outcome_tag = max(self._next_outcome_tag, source._next_outcome_tag)
        self._materials = source.materials
        self._metrics = source.metrics
        self._status = source.status
        self._children = [SubmittableLearningObject(child) for child in source.children]
        for child in self._children:
            child._parent = self
        self._child_references = list(source.child_references)
        self._contributors = list(source.contributors)
        self._lock = source.lock
        self._collection = source.collection
        self.extensions = dict(source.extensions)

        # A copy carries the draft's modification history, not its own
        self._date = source.date
        self._version = source.version
        self.clear_domain_events()

    @classmethod
    def from_learning_object(cls, source: LearningObject) -> "SubmittableLearningObject":
        return cls(source)
