"""
CLARK Entities - Learning Outcomes

Learning goals, learning outcomes, and the assessment plans and
instructional strategies owned by an outcome.

Every taxon-dependent field is checked against the process-wide taxonomy
at the moment it is assigned:

    outcome = LearningOutcome(bloom="apply")
    outcome.verb = "implement"
    plan = outcome.add_assessment()      # plan.source_bloom == "apply"
    plan.plan = "lab exercise"
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from core.errors import (
    InvalidAssessmentPlan,
    InvalidBloom,
    InvalidInstruction,
    InvalidMapping,
    InvalidOutcome,
    InvalidText,
    InvalidVerb,
)
from core.taxonomy import get_taxonomy
from core.validation import to_epoch_millis
from domain.value_objects import Capability, OutcomeSource, StandardOutcome

if TYPE_CHECKING:
    from domain.entities import LearningObject

logger = logging.getLogger("clark.outcomes")


class LearningGoal:
    """A goal a learning object should achieve."""

    def __init__(self, text: str = "") -> None:
        self._text = ""
        self.text = text
        self.extensions: Dict[str, Any] = {}

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, text: str) -> None:
        if text is None:
            raise InvalidText(text)
        self._text = str(text)

    def copy(self) -> "LearningGoal":
        goal = LearningGoal(self._text)
        goal.extensions = dict(self.extensions)
        return goal

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extensions)
        result["text"] = self._text
        return result

    @classmethod
    def instantiate(cls, bag: Mapping[str, Any]) -> "LearningGoal":
        from domain.reconstruction import instantiate_goal

        return instantiate_goal(bag)

    def __repr__(self) -> str:
        return f"LearningGoal(text={self._text!r})"


# =============================================================================
# TAXON-BOUND CHILDREN OF AN OUTCOME
# =============================================================================


class _TaxonBoundItem:
    """
    Shared shape of assessment plans and instructional strategies.

    The "kind" value is validated against the classes registered for
    ``source_bloom`` when it is assigned. ``source_bloom`` is fixed at
    creation; if the owning outcome later changes taxon the kind is not
    revalidated.
    """

    def __init__(self, source_bloom: str) -> None:
        if source_bloom not in get_taxonomy().levels:
            raise InvalidBloom(source_bloom)
        self._source_bloom = source_bloom
        self._kind = self._default_kind()
        self._text = ""
        self.extensions: Dict[str, Any] = {}

    def _allowed_kinds(self) -> FrozenSet[str]:
        raise NotImplementedError

    def _default_kind(self) -> str:
        raise NotImplementedError

    def _set_kind(self, value: str) -> None:
        if value not in self._allowed_kinds():
            raise self._kind_error(value)
        self._kind = value

    def _kind_error(self, value: Any) -> Exception:
        raise NotImplementedError

    @property
    def source_bloom(self) -> str:
        return self._source_bloom

    @property
    def is_stale(self) -> bool:
        """True when the kind is no longer registered for the source taxon."""
        return self._kind not in self._allowed_kinds()

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, text: Optional[str]) -> None:
        self._text = "" if text is None else str(text)


class AssessmentPlan(_TaxonBoundItem):
    """A plan to assess how well an outcome is achieved (essay, test, ...)."""

    def _allowed_kinds(self) -> FrozenSet[str]:
        return get_taxonomy().assessment_classes_for(self._source_bloom)

    def _default_kind(self) -> str:
        return get_taxonomy().default_assessment(self._source_bloom)

    def _kind_error(self, value: Any) -> Exception:
        return InvalidAssessmentPlan(self._source_bloom, value)

    @property
    def plan(self) -> str:
        return self._kind

    @plan.setter
    def plan(self, plan: str) -> None:
        self._set_kind(plan)

    def copy(self) -> "AssessmentPlan":
        clone = AssessmentPlan(self._source_bloom)
        clone._kind = self._kind
        clone._text = self._text
        clone.extensions = dict(self.extensions)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extensions)
        result.update({
            "sourceBloom": self._source_bloom,
            "plan": self._kind,
            "text": self._text,
        })
        return result

    @classmethod
    def instantiate(
        cls,
        bag: Mapping[str, Any],
        source: Optional["LearningOutcome"] = None,
    ) -> "AssessmentPlan":
        from domain.reconstruction import instantiate_assessment

        return instantiate_assessment(bag, source)

    def __repr__(self) -> str:
        return f"AssessmentPlan(source_bloom={self._source_bloom!r}, plan={self._kind!r})"


class InstructionalStrategy(_TaxonBoundItem):
    """A strategy for achieving an outcome (lecture, lab, ...)."""

    def _allowed_kinds(self) -> FrozenSet[str]:
        return get_taxonomy().instruction_classes_for(self._source_bloom)

    def _default_kind(self) -> str:
        return get_taxonomy().default_instruction(self._source_bloom)

    def _kind_error(self, value: Any) -> Exception:
        return InvalidInstruction(self._source_bloom, value)

    @property
    def instruction(self) -> str:
        return self._kind

    @instruction.setter
    def instruction(self, instruction: str) -> None:
        self._set_kind(instruction)

    def copy(self) -> "InstructionalStrategy":
        clone = InstructionalStrategy(self._source_bloom)
        clone._kind = self._kind
        clone._text = self._text
        clone.extensions = dict(self.extensions)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extensions)
        result.update({
            "sourceBloom": self._source_bloom,
            "instruction": self._kind,
            "text": self._text,
        })
        return result

    @classmethod
    def instantiate(
        cls,
        bag: Mapping[str, Any],
        source: Optional["LearningOutcome"] = None,
    ) -> "InstructionalStrategy":
        from domain.reconstruction import instantiate_strategy

        return instantiate_strategy(bag, source)

    def __repr__(self) -> str:
        return f"InstructionalStrategy(source_bloom={self._source_bloom!r}, instruction={self._kind!r})"


# =============================================================================
# LEARNING OUTCOMES
# =============================================================================


Outcome = Union["LearningOutcome", StandardOutcome]


def outcome_summary(outcome: Outcome) -> Dict[str, Any]:
    """The Outcome-interface view (author, name, date, outcome) of any outcome."""
    return {
        "author": outcome.author,
        "name": outcome.name,
        "date": outcome.date,
        "outcome": outcome.outcome,
    }


class LearningOutcome:
    """
    What a learning object should enable students to do.

    Invariants:
        - bloom is a registered taxon
        - verb is registered for the current bloom
        - text is defined (and non-empty for submittable outcomes)

    An outcome attached to a learning object reads its source (author,
    name, date) live from that object; a standalone outcome keeps the
    snapshot it was rebuilt from.
    """

    def __init__(
        self,
        bloom: Optional[str] = None,
        verb: Optional[str] = None,
        text: str = "",
        *,
        capability: Capability = Capability.DRAFT,
    ) -> None:
        taxonomy = get_taxonomy()
        self._capability = capability
        self._bloom = taxonomy.default_bloom
        self._verb = taxonomy.default_verb(self._bloom)
        self._text = ""
        self._tag: Optional[int] = None
        self._owner: Optional["LearningObject"] = None
        self._source_snapshot = OutcomeSource()
        self._mappings: List[Outcome] = []
        self._assessments: List[AssessmentPlan] = []
        self._strategies: List[InstructionalStrategy] = []
        self.extensions: Dict[str, Any] = {}

        if bloom is not None:
            self.bloom = bloom
        if verb is not None:
            self.verb = verb
        self.text = text

    # =========================================================================
    # CAPABILITY
    # =========================================================================

    @property
    def capability(self) -> Capability:
        return self._capability

    @property
    def is_submittable(self) -> bool:
        return self._capability is Capability.SUBMITTABLE

    # =========================================================================
    # TAXON, VERB, TEXT
    # =========================================================================

    @property
    def bloom(self) -> str:
        return self._bloom

    @bloom.setter
    def bloom(self, bloom: str) -> None:
        taxonomy = get_taxonomy()
        if bloom not in taxonomy.levels:
            raise InvalidBloom(bloom)
        self._bloom = bloom
        if self._verb not in taxonomy.verbs_for(bloom):
            logger.debug(
                "Verb %r is not registered for %r; resetting to %r",
                self._verb, bloom, taxonomy.default_verb(bloom),
            )
            self._verb = taxonomy.default_verb(bloom)

    @property
    def verb(self) -> str:
        return self._verb

    @verb.setter
    def verb(self, verb: str) -> None:
        if verb not in get_taxonomy().verbs_for(self._bloom):
            raise InvalidVerb(self._bloom, verb)
        self._verb = verb

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, text: Optional[str]) -> None:
        if text is None:
            raise InvalidText(text, submittable=self.is_submittable)
        value = str(text).strip()
        if self.is_submittable and not value:
            raise InvalidText(text, submittable=True)
        self._text = value

    @property
    def tag(self) -> Optional[int]:
        """Identifier unique within the owning learning object."""
        return self._tag

    # =========================================================================
    # OUTCOME INTERFACE
    # =========================================================================

    @property
    def source(self) -> OutcomeSource:
        if self._owner is not None:
            return OutcomeSource(
                author=self._owner.author.name,
                name=self._owner.name,
                date=to_epoch_millis(self._owner.date),
            )
        return self._source_snapshot

    @property
    def author(self) -> str:
        return self.source.author

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def date(self) -> str:
        return self.source.date

    @property
    def outcome(self) -> str:
        return f"{self._verb} {self._text}"

    @property
    def owner(self) -> Optional["LearningObject"]:
        """The learning object this outcome is attached to, if any."""
        return self._owner

    def _attach(self, owner: "LearningObject", tag: int) -> None:
        self._owner = owner
        self._tag = tag

    def _detach(self) -> None:
        self._source_snapshot = self.source
        self._owner = None

    # =========================================================================
    # MAPPINGS - non-owning references to other outcomes
    # =========================================================================

    @property
    def mappings(self) -> Tuple[Outcome, ...]:
        return tuple(self._mappings)

    def map_to(self, outcome: Outcome) -> int:
        """Map another outcome to this one. Returns the mapping's index."""
        if not isinstance(outcome, (LearningOutcome, StandardOutcome)):
            raise InvalidMapping(outcome)
        self._mappings.append(outcome)
        return len(self._mappings) - 1

    def unmap(self, index: int) -> Outcome:
        return self._mappings.pop(index)

    # =========================================================================
    # ASSESSMENTS AND STRATEGIES - owned children
    # =========================================================================

    @property
    def assessments(self) -> Tuple[AssessmentPlan, ...]:
        return tuple(self._assessments)

    def add_assessment(self) -> AssessmentPlan:
        """Add a blank assessment plan bound to the current taxon."""
        assessment = AssessmentPlan(self._bloom)
        self._assessments.append(assessment)
        return assessment

    def remove_assessment(self, index: int) -> AssessmentPlan:
        return self._assessments.pop(index)

    @property
    def strategies(self) -> Tuple[InstructionalStrategy, ...]:
        return tuple(self._strategies)

    def add_strategy(self) -> InstructionalStrategy:
        """Add a blank instructional strategy bound to the current taxon."""
        strategy = InstructionalStrategy(self._bloom)
        self._strategies.append(strategy)
        return strategy

    def remove_strategy(self, index: int) -> InstructionalStrategy:
        return self._strategies.pop(index)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def _copy_into(self, target: "LearningOutcome") -> None:
        target._bloom = self._bloom
        target._verb = self._verb
        target._tag = self._tag
        target._source_snapshot = self.source
        target._mappings = list(self._mappings)
        target._assessments = [a.copy() for a in self._assessments]
        target._strategies = [s.copy() for s in self._strategies]
        target.extensions = dict(self.extensions)

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extensions)
        result.update({
            "tag": self._tag,
            "bloom": self._bloom,
            "verb": self._verb,
            "text": self._text,
            "mappings": [outcome_summary(m) for m in self._mappings],
            "assessments": [a.to_dict() for a in self._assessments],
            "strategies": [s.to_dict() for s in self._strategies],
        })
        result.update(outcome_summary(self))
        return result

    @classmethod
    def instantiate(cls, bag: Mapping[str, Any]) -> "LearningOutcome":
        from domain.reconstruction import instantiate_outcome

        return instantiate_outcome(bag)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self._tag!r}, bloom={self._bloom!r}, outcome={self.outcome!r})"


class SubmittableLearningOutcome(LearningOutcome):
    """
    A learning outcome that satisfies the submission-time rules.

    Built by copying an existing outcome; the copy fails with
    ``InvalidText`` if the outcome's text is empty.
    """

    def __init__(self, outcome: LearningOutcome) -> None:
        if not isinstance(outcome, LearningOutcome):
            raise InvalidOutcome(outcome)
        super().__init__(capability=Capability.SUBMITTABLE, text=outcome.text)
        outcome._copy_into(self)

    @classmethod
    def from_outcome(cls, outcome: LearningOutcome) -> "SubmittableLearningOutcome":
        return cls(outcome)
