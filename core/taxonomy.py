"""
CLARK Entities - Taxonomy Lookup

Read-only tables mapping a Bloom taxon to the verbs, assessment classes and
instructional-strategy classes allowed for it, plus the allowed learning
object lengths.

The taxonomy is loaded once per process, from the bundled defaults below or
from a JSON file named by ``CLARK_TAXONOMY_FILE``, and is never mutated
afterwards. Entities only ever query it.

JSON file shape:
    {
        "verbs": {"remember": ["define", ...], ...},
        "assessments": {"remember": ["multiple choice questions", ...], ...},
        "instructions": {"remember": ["lecture", ...], ...},
        "lengths": ["nanomodule", "micromodule", "module", "unit", "course"]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from core.errors import ClarkConfigError

logger = logging.getLogger("clark.taxonomy")


# Ordered: the first taxon is the default for blank outcomes, and the first
# entry of each list is the default for a blank outcome, plan or strategy.
DEFAULT_VERBS: Dict[str, Tuple[str, ...]] = {
    "remember": (
        "define", "describe", "identify", "label", "list", "match",
        "name", "outline", "recall", "recognize", "reproduce", "state",
    ),
    "understand": (
        "classify", "compare", "contrast", "discuss", "explain",
        "generalize", "give examples", "infer", "interpret", "paraphrase",
        "summarize", "translate",
    ),
    "apply": (
        "apply", "calculate", "compute", "construct", "demonstrate",
        "execute", "implement", "modify", "operate", "prepare", "solve",
        "use",
    ),
    "analyze": (
        "analyze", "categorize", "deconstruct", "diagram", "differentiate",
        "discriminate", "distinguish", "examine", "organize", "relate",
        "separate", "test",
    ),
    "evaluate": (
        "appraise", "assess", "conclude", "critique", "defend", "evaluate",
        "judge", "justify", "prioritize", "recommend", "support", "validate",
    ),
    "create": (
        "assemble", "compose", "create", "design", "develop", "devise",
        "formulate", "generate", "integrate", "plan", "produce", "propose",
    ),
}

DEFAULT_ASSESSMENTS: Dict[str, Tuple[str, ...]] = {
    "remember": (
        "multiple choice questions", "true/false questions",
        "fill-in-the-blank questions", "matching questions", "short answer",
    ),
    "understand": (
        "multiple choice questions", "short answer", "essay",
        "concept map", "oral presentation",
    ),
    "apply": (
        "lab exercise", "problem set", "simulation", "case study",
        "demonstration",
    ),
    "analyze": (
        "case study", "critique", "debate", "report", "capture the flag",
    ),
    "evaluate": (
        "critique", "peer review", "debate", "essay", "self-assessment",
    ),
    "create": (
        "project", "portfolio", "design document", "research paper",
        "prototype",
    ),
}

DEFAULT_INSTRUCTIONS: Dict[str, Tuple[str, ...]] = {
    "remember": (
        "lecture", "reading", "flash cards", "drill and practice", "video",
    ),
    "understand": (
        "lecture", "discussion", "reading", "demonstration", "video",
    ),
    "apply": (
        "lab", "guided practice", "demonstration", "simulation",
        "worked examples",
    ),
    "analyze": (
        "case study", "discussion", "problem-based learning", "lab",
        "think-pair-share",
    ),
    "evaluate": (
        "debate", "peer review", "case study", "discussion", "seminar",
    ),
    "create": (
        "project-based learning", "design studio", "capstone",
        "research", "brainstorming",
    ),
}

DEFAULT_LENGTHS: Tuple[str, ...] = (
    "nanomodule", "micromodule", "module", "unit", "course",
)


def _frozen_table(table: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({str(k): tuple(str(v) for v in values) for k, values in table.items()})


@dataclass(frozen=True)
class Taxonomy:
    """
    Immutable Bloom taxonomy lookup.

    Order is preserved so that defaults (first taxon, first verb, first
    assessment class, first instruction class) are deterministic.
    """

    verbs: Mapping[str, Tuple[str, ...]]
    assessments: Mapping[str, Tuple[str, ...]]
    instructions: Mapping[str, Tuple[str, ...]]
    length_order: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.verbs:
            raise ClarkConfigError("Taxonomy must define at least one Bloom taxon", config_key="verbs")
        for name, table in (("assessments", self.assessments), ("instructions", self.instructions)):
            missing = [bloom for bloom in self.verbs if not table.get(bloom)]
            if missing:
                raise ClarkConfigError(
                    f"Taxonomy {name} table is missing taxa: {', '.join(missing)}",
                    config_key=name,
                    actual_value=missing,
                )
        empty = [bloom for bloom, verbs in self.verbs.items() if not verbs]
        if empty:
            raise ClarkConfigError(
                f"Taxonomy verbs table has taxa without verbs: {', '.join(empty)}",
                config_key="verbs",
                actual_value=empty,
            )
        if not self.length_order:
            raise ClarkConfigError("Taxonomy must define at least one length", config_key="lengths")

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def levels(self) -> FrozenSet[str]:
        """Registered Bloom taxa."""
        return frozenset(self.verbs)

    @property
    def lengths(self) -> FrozenSet[str]:
        return frozenset(self.length_order)

    @property
    def default_bloom(self) -> str:
        return next(iter(self.verbs))

    def verbs_for(self, bloom: str) -> FrozenSet[str]:
        return frozenset(self.verbs.get(bloom, ()))

    def assessment_classes_for(self, bloom: str) -> FrozenSet[str]:
        return frozenset(self.assessments.get(bloom, ()))

    def instruction_classes_for(self, bloom: str) -> FrozenSet[str]:
        return frozenset(self.instructions.get(bloom, ()))

    def default_verb(self, bloom: str) -> str:
        return self.verbs[bloom][0]

    def default_assessment(self, bloom: str) -> str:
        return self.assessments[bloom][0]

    def default_instruction(self, bloom: str) -> str:
        return self.instructions[bloom][0]

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Taxonomy":
        """Build a taxonomy from a decoded JSON document."""
        try:
            return cls(
                verbs=_frozen_table(data["verbs"]),
                assessments=_frozen_table(data["assessments"]),
                instructions=_frozen_table(data["instructions"]),
                length_order=tuple(str(v) for v in data.get("lengths", DEFAULT_LENGTHS)),
            )
        except (KeyError, AttributeError, TypeError) as e:
            raise ClarkConfigError(f"Malformed taxonomy document: {e}", cause=e) from e

    @classmethod
    def default(cls) -> "Taxonomy":
        return cls(
            verbs=_frozen_table(DEFAULT_VERBS),
            assessments=_frozen_table(DEFAULT_ASSESSMENTS),
            instructions=_frozen_table(DEFAULT_INSTRUCTIONS),
            length_order=DEFAULT_LENGTHS,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verbs": {k: list(v) for k, v in self.verbs.items()},
            "assessments": {k: list(v) for k, v in self.assessments.items()},
            "instructions": {k: list(v) for k, v in self.instructions.items()},
            "lengths": list(self.length_order),
        }


def load_taxonomy(path: Optional[Path] = None) -> Taxonomy:
    """
    Load a taxonomy from a JSON file, or the bundled defaults.

    Raises:
        ClarkConfigError: If the file is unreadable or malformed
    """
    if path is None:
        return Taxonomy.default()

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        raise ClarkConfigError(
            f"Could not load taxonomy from {path}: {e}",
            config_key="CLARK_TAXONOMY_FILE",
            actual_value=str(path),
            cause=e,
        ) from e

    taxonomy = Taxonomy.from_dict(data)
    logger.info("Loaded taxonomy from %s (%d taxa)", path, len(taxonomy.verbs))
    return taxonomy


@lru_cache(maxsize=1)
def get_taxonomy() -> Taxonomy:
    """Process-wide taxonomy, loaded on first use."""
    from config import get_config

    return load_taxonomy(get_config().taxonomy.file)
