"""
CLARK Entities - Reconstruction

Rebuilds validated entity graphs from persisted property bags.

Documents in storage were written by several generations of the entity
library, so the same concept can appear under different keys:

    PRIVATE_ATTRIBUTE   {"_name": "Intro to Testing"}
    PUBLIC_PROPERTY     {"name": "Intro to Testing"}
    PRE_RELEASE         {"level": ["graduate"], "repository": {...}}

Each entity has a field table listing, per field, the keys to consult in
priority order. The first non-None value wins and goes through the same
validating setter a live mutation would use, so bad persisted data fails
loudly. Lower-priority keys that disagree with the chosen value are kept
under ``_shadowedFields`` in the entity's extensions, and any key no table
recognizes is copied into extensions verbatim.

Usage:
    from domain.reconstruction import instantiate_learning_object

    learning_object = instantiate_learning_object(document)
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from config import get_config
from core.errors import (
    InvalidAuthor,
    InvalidChild,
    InvalidContributor,
    InvalidLock,
    InvalidMapping,
    InvalidMaterial,
    InvalidMetrics,
    InvalidOutcome,
    ReconstructionError,
)
from core.taxonomy import get_taxonomy
from core.validation import parse_timestamp
from domain.entities import LearningObject
from domain.outcomes import AssessmentPlan, InstructionalStrategy, LearningGoal, LearningOutcome
from domain.users import User
from domain.value_objects import (
    LearningObjectLock,
    Material,
    Metrics,
    OutcomeSource,
    StandardOutcome,
)
from observability.logging import get_logger

logger = get_logger("clark.reconstruction")

SHADOWED_FIELDS_KEY = "_shadowedFields"

_MISSING = object()


# =============================================================================
# FIELD TABLES
# =============================================================================


class SchemaRevision(IntEnum):
    """Persisted naming conventions, highest priority first."""
    PRIVATE_ATTRIBUTE = 1
    PUBLIC_PROPERTY = 2
    PRE_RELEASE = 3


@dataclass(frozen=True)
class FieldAlias:
    revision: SchemaRevision
    key: str


FieldTable = Mapping[str, Tuple[FieldAlias, ...]]


def aliases(name: str, *pre_release: str) -> Tuple[FieldAlias, ...]:
    """The private and public spellings of ``name``, then any pre-release keys."""
    found = [
        FieldAlias(SchemaRevision.PRIVATE_ATTRIBUTE, f"_{name}"),
        FieldAlias(SchemaRevision.PUBLIC_PROPERTY, name),
    ]
    found.extend(FieldAlias(SchemaRevision.PRE_RELEASE, key) for key in pre_release)
    return tuple(sorted(found, key=lambda alias: alias.revision))


def field_table(*fields: Any) -> FieldTable:
    """Build a table from field names or (name, pre-release keys...) tuples."""
    table: Dict[str, Tuple[FieldAlias, ...]] = {}
    for entry in fields:
        if isinstance(entry, tuple):
            table[entry[0]] = aliases(*entry)
        else:
            table[entry] = aliases(entry)
    return table


USER_FIELDS = field_table(
    "username", "name", "email", "emailVerified", "organization", "bio", "createdAt",
)

# "published" is derived from status; read only for a consistency check
LEARNING_OBJECT_FIELDS = field_table(
    "id", "author", "name", "description", "date", "length",
    ("levels", "level"),
    "goals", "outcomes",
    ("materials", "repository"),
    "metrics", "published", "status", "children", "contributors", "lock", "collection",
)

# author, name and date form the source snapshot; "outcome" is derived
OUTCOME_FIELDS = field_table(
    "tag", "bloom", "verb", "text", "mappings", "assessments", "strategies",
    "author", "name", "date", "outcome",
)

ASSESSMENT_FIELDS = field_table("sourceBloom", "plan", "text")

STRATEGY_FIELDS = field_table("sourceBloom", ("instruction", "plan"), "text")

GOAL_FIELDS = field_table("text")


# =============================================================================
# FIELD READER
# =============================================================================


class FieldReader:
    """
    Resolves the fields of one property bag against a field table.

    Tracks which keys were consumed so that everything else can be carried
    into the entity's extensions.
    """

    def __init__(self, entity_type: str, bag: Any, table: FieldTable) -> None:
        if not isinstance(bag, Mapping):
            raise ReconstructionError(
                f"Cannot rebuild {entity_type} from {type(bag).__name__}; expected a mapping",
                entity_type=entity_type,
            )
        self.entity_type = entity_type
        self._bag = bag
        self._table = table
        self._consumed: Set[str] = set()
        self._shadowed: Dict[str, Any] = {}

    def get(self, field_name: str) -> Any:
        """Value of ``field_name`` from its highest-priority non-None alias, or _MISSING."""
        chosen: Any = _MISSING
        chosen_key = ""
        for alias in self._table[field_name]:
            if alias.key not in self._bag:
                continue
            self._consumed.add(alias.key)
            value = self._bag[alias.key]
            if value is None:
                continue
            if chosen is _MISSING:
                chosen, chosen_key = value, alias.key
            elif value != chosen:
                self._shadowed[alias.key] = value
                logger.warning(
                    "shadowed_field",
                    entity=self.entity_type,
                    field=field_name,
                    chosen_key=chosen_key,
                    shadowed_key=alias.key,
                    revision=alias.revision.name,
                )
        return chosen

    def read_all(self) -> Dict[str, Any]:
        """Every present field, keyed by its current public name."""
        values: Dict[str, Any] = {}
        for field_name in self._table:
            value = self.get(field_name)
            if value is not _MISSING:
                values[field_name] = value
        return values

    def extensions(self) -> Dict[str, Any]:
        """Unrecognized keys, plus disagreeing legacy values when configured."""
        extra = {k: v for k, v in self._bag.items() if k not in self._consumed}
        if self._shadowed and get_config().reconstruction.preserve_shadowed_fields:
            shadowed = dict(extra.get(SHADOWED_FIELDS_KEY) or {})
            shadowed.update(self._shadowed)
            extra[SHADOWED_FIELDS_KEY] = shadowed
        return extra


def _sequence(entity_type: str, field_name: str, value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ReconstructionError(
        f"{entity_type}.{field_name} must be a list, got {type(value).__name__}",
        entity_type=entity_type,
    )


# =============================================================================
# USERS AND GOALS
# =============================================================================


def instantiate_user(bag: Mapping[str, Any]) -> User:
    """
    Rebuild a User.

    Example:
        >>> instantiate_user({"username": "nvisal1", "_name": "Nick"}).username
        'nvisal1'
    """
    reader = FieldReader("User", bag, USER_FIELDS)
    values = reader.read_all()

    user = User(
        username=str(values.get("username", "")),
        email_verified=bool(values.get("emailVerified", False)),
        created_at=values.get("createdAt"),
    )
    for field_name in ("name", "email", "organization", "bio"):
        if field_name in values:
            setattr(user, field_name, values[field_name])

    user.extensions = reader.extensions()
    return user


def _as_user(value: Any, error: Callable[[Any], Exception]) -> User:
    if isinstance(value, User):
        return value
    if isinstance(value, Mapping):
        return instantiate_user(value)
    if isinstance(value, str) and value.strip():
        # Some documents store only the username
        return User(username=value)
    raise error(value)


def instantiate_goal(bag: Mapping[str, Any]) -> LearningGoal:
    reader = FieldReader("LearningGoal", bag, GOAL_FIELDS)
    values = reader.read_all()
    goal = LearningGoal(values.get("text", ""))
    goal.extensions = reader.extensions()
    return goal


def _as_goal(value: Any) -> LearningGoal:
    if isinstance(value, LearningGoal):
        return value
    if isinstance(value, str):
        return LearningGoal(value)
    return instantiate_goal(value)


# =============================================================================
# OUTCOMES, ASSESSMENTS, STRATEGIES
# =============================================================================


def _source_bloom(values: Mapping[str, Any], source: Optional[LearningOutcome]) -> str:
    if "sourceBloom" in values:
        return str(values["sourceBloom"])
    if source is not None:
        return source.bloom
    return get_taxonomy().default_bloom


def instantiate_assessment(
    bag: Mapping[str, Any],
    source: Optional[LearningOutcome] = None,
) -> AssessmentPlan:
    """Rebuild an assessment plan; ``source`` supplies the taxon when the bag has none."""
    reader = FieldReader("AssessmentPlan", bag, ASSESSMENT_FIELDS)
    values = reader.read_all()

    assessment = AssessmentPlan(_source_bloom(values, source))
    if "plan" in values:
        assessment.plan = values["plan"]
    if "text" in values:
        assessment.text = values["text"]

    assessment.extensions = reader.extensions()
    return assessment


def instantiate_strategy(
    bag: Mapping[str, Any],
    source: Optional[LearningOutcome] = None,
) -> InstructionalStrategy:
    """Rebuild an instructional strategy; pre-release documents call the kind ``plan``."""
    reader = FieldReader("InstructionalStrategy", bag, STRATEGY_FIELDS)
    values = reader.read_all()

    strategy = InstructionalStrategy(_source_bloom(values, source))
    if "instruction" in values:
        strategy.instruction = values["instruction"]
    if "text" in values:
        strategy.text = values["text"]

    strategy.extensions = reader.extensions()
    return strategy


def _as_mapping_target(value: Any) -> Any:
    if isinstance(value, (LearningOutcome, StandardOutcome)):
        return value
    if isinstance(value, Mapping):
        return StandardOutcome.from_dict(value)
    raise InvalidMapping(value)


def instantiate_outcome(bag: Mapping[str, Any]) -> LearningOutcome:
    """
    Rebuild a standalone learning outcome.

    The persisted author, name and date become the outcome's source
    snapshot; attaching it to a learning object replaces them with the
    object's live values.
    """
    reader = FieldReader("LearningOutcome", bag, OUTCOME_FIELDS)
    values = reader.read_all()

    outcome = LearningOutcome()
    if "bloom" in values:
        outcome.bloom = values["bloom"]
    if "verb" in values:
        outcome.verb = values["verb"]
    if "text" in values:
        outcome.text = values["text"]
    if "tag" in values:
        try:
            outcome._tag = int(values["tag"])
        except (TypeError, ValueError) as e:
            raise ReconstructionError(
                f"Outcome tag must be an integer, got {values['tag']!r}",
                entity_type="LearningOutcome",
                cause=e,
            ) from e

    for mapping in _sequence("LearningOutcome", "mappings", values.get("mappings", [])):
        outcome.map_to(_as_mapping_target(mapping))
    for assessment in _sequence("LearningOutcome", "assessments", values.get("assessments", [])):
        outcome._assessments.append(instantiate_assessment(assessment, outcome))
    for strategy in _sequence("LearningOutcome", "strategies", values.get("strategies", [])):
        outcome._strategies.append(instantiate_strategy(strategy, outcome))

    outcome._source_snapshot = OutcomeSource(
        author=_source_text(values.get("author", "")),
        name=str(values.get("name", "")),
        date=str(values.get("date", "")),
    )
    outcome.extensions = reader.extensions()
    return outcome


def _source_text(author: Any) -> str:
    if isinstance(author, Mapping):
        return str(author.get("name") or author.get("_name") or "")
    return str(author)


def _as_outcome(value: Any) -> LearningOutcome:
    if isinstance(value, LearningOutcome):
        return value
    if isinstance(value, str):
        # Some stores keep each outcome as a serialized JSON document
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ReconstructionError(
                f"Outcome is not a valid JSON document: {value!r}",
                entity_type="LearningOutcome",
                cause=e,
            ) from e
    if isinstance(value, Mapping):
        return instantiate_outcome(value)
    raise InvalidOutcome(value)


# =============================================================================
# LEARNING OBJECTS
# =============================================================================


def _as_material(value: Any) -> Material:
    if isinstance(value, Material):
        return value
    if isinstance(value, Mapping):
        return Material.from_dict(value)
    raise InvalidMaterial(value)


def _as_metrics(value: Any) -> Metrics:
    if isinstance(value, Metrics):
        return value
    if isinstance(value, Mapping):
        return Metrics.from_dict(value)
    raise InvalidMetrics(value)


def _as_lock(value: Any) -> LearningObjectLock:
    if isinstance(value, LearningObjectLock):
        return value
    if isinstance(value, Mapping):
        return LearningObjectLock.from_dict(value)
    raise InvalidLock(value)


def _add_child(learning_object: LearningObject, child: Any) -> None:
    if isinstance(child, str):
        learning_object.add_child_reference(child)
    elif isinstance(child, LearningObject):
        learning_object.add_child(child)
    elif isinstance(child, Mapping):
        learning_object.add_child(instantiate_learning_object(child))
    else:
        raise InvalidChild(child)


def instantiate_learning_object(bag: Mapping[str, Any]) -> LearningObject:
    """
    Rebuild a learning object and everything it embeds.

    Children given as bare identifiers are kept in ``child_references`` for
    the application layer to resolve. The persisted ``published`` flag is
    derived, so it is only compared against the status.

    Raises:
        ReconstructionError: If the bag or a nested collection has the wrong shape
        ClarkValidationError: If a present value fails its setter's validation
    """
    reader = FieldReader("LearningObject", bag, LEARNING_OBJECT_FIELDS)
    values = reader.read_all()

    author = _as_user(values["author"], InvalidAuthor) if "author" in values else None
    learning_object = LearningObject(
        author=author,
        id=str(values["id"]) if "id" in values else None,
    )

    # An empty persisted name means the object was never named
    if values.get("name", "") != "":
        learning_object.name = values["name"]
    if "description" in values:
        learning_object.description = values["description"]
    if "length" in values:
        learning_object.length = values["length"]
    if "levels" in values:
        levels = values["levels"]
        learning_object._replace_levels([levels] if isinstance(levels, str) else _sequence(
            "LearningObject", "levels", levels,
        ))

    for goal in _sequence("LearningObject", "goals", values.get("goals", [])):
        learning_object.add_goal(_as_goal(goal))
    for outcome in _sequence("LearningObject", "outcomes", values.get("outcomes", [])):
        learning_object._attach_outcome(_as_outcome(outcome), keep_tag=True)

    if "materials" in values:
        learning_object.materials = _as_material(values["materials"])
    if "metrics" in values:
        learning_object.metrics = _as_metrics(values["metrics"])
    if "status" in values:
        learning_object.status = values["status"]

    for child in _sequence("LearningObject", "children", values.get("children", [])):
        _add_child(learning_object, child)
    for contributor in _sequence("LearningObject", "contributors", values.get("contributors", [])):
        learning_object.add_contributor(_as_user(contributor, InvalidContributor))

    if "collection" in values:
        learning_object.collection = values["collection"]
    if "lock" in values:
        learning_object.lock = _as_lock(values["lock"])

    if "published" in values:
        _check_published(learning_object, values["published"])

    learning_object.extensions = reader.extensions()

    # Restored last so that rebuilding does not count as modification
    if "date" in values:
        learning_object._date = parse_timestamp(values["date"])
    learning_object._version = 0
    learning_object.clear_domain_events()
    return learning_object


def _check_published(learning_object: LearningObject, persisted: Any) -> None:
    if bool(persisted) == learning_object.published:
        return
    if get_config().reconstruction.warn_published_mismatch:
        logger.warning(
            "published_flag_mismatch",
            learning_object=learning_object.name,
            status=learning_object.status.value,
            persisted_published=bool(persisted),
        )


# =============================================================================
# DISPATCH
# =============================================================================


INSTANTIATORS: Mapping[str, Callable[[Mapping[str, Any]], Any]] = {
    "User": instantiate_user,
    "LearningObject": instantiate_learning_object,
    "LearningOutcome": instantiate_outcome,
    "AssessmentPlan": instantiate_assessment,
    "InstructionalStrategy": instantiate_strategy,
    "LearningGoal": instantiate_goal,
}


def instantiate(entity_type: str, bag: Mapping[str, Any]) -> Any:
    """Rebuild any entity by type name."""
    try:
        instantiator = INSTANTIATORS[entity_type]
    except KeyError as e:
        raise ReconstructionError(
            f"Unknown entity type {entity_type!r}; expected one of {', '.join(INSTANTIATORS)}",
            entity_type=entity_type,
            cause=e,
        ) from e
    return instantiator(bag)


def instantiate_many(entity_type: str, bags: Iterable[Mapping[str, Any]]) -> List[Any]:
    return [instantiate(entity_type, bag) for bag in bags]
