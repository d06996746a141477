"""
CLARK Entities - Submission

The boundary at which a draft learning object is proposed for review.

    report = submission_report(draft)
    if report.ready:
        submittable = submit(draft)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from domain.entities import LearningObject, LearningObjectSubmitted, SubmittableLearningObject
from domain.specifications import SubmissionReadySpec

logger = logging.getLogger("clark.submission")


@dataclass
class SubmissionReport:
    """Every reason a learning object cannot be submitted yet."""
    name: str
    violations: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ready": self.ready,
            "violations": list(self.violations),
        }


def submission_report(learning_object: LearningObject) -> SubmissionReport:
    """Check a draft against the submission rules without raising."""
    return SubmissionReport(
        name=learning_object.name,
        violations=SubmissionReadySpec().explain(learning_object),
    )


def submit(learning_object: LearningObject) -> SubmittableLearningObject:
    """
    Produce the submittable form of a learning object.

    Already-submittable objects are returned as they are. The draft records a
    LearningObjectSubmitted event when the copy succeeds.

    Raises:
        InvalidDescription: If the description is empty
        InvalidOutcomes: If there are no outcomes
        InvalidText: If any outcome, here or in a child, has empty text
    """
    if isinstance(learning_object, SubmittableLearningObject):
        return learning_object

    submittable = SubmittableLearningObject.from_learning_object(learning_object)
    learning_object.add_domain_event(LearningObjectSubmitted(
        aggregate_id=learning_object.id,
        name=learning_object.name,
        outcome_count=len(submittable.outcomes),
        child_count=len(submittable.children),
    ))
    logger.info(
        "Learning object %r is ready for review (%d outcomes, %d children)",
        learning_object.name, len(submittable.outcomes), len(submittable.children),
    )
    return submittable
