"""
Tests for domain/reconstruction.py - Rebuilding Entities from Documents.

Covers:
- Field aliases across persisted naming conventions
- Shadowed legacy values and unknown keys
- Full learning object documents and round trips
- Typed failures on bad documents
"""
import logging

import pytest

import config
from core.errors import (
    InvalidAuthor,
    InvalidDate,
    InvalidLength,
    InvalidLevels,
    InvalidOutcome,
    InvalidStatus,
    LevelExists,
    ReconstructionError,
)
from core.validation import to_epoch_millis
from domain.entities import LearningObject
from domain.outcomes import AssessmentPlan, InstructionalStrategy, LearningGoal, LearningOutcome
from domain.reconstruction import (
    LEARNING_OBJECT_FIELDS,
    SHADOWED_FIELDS_KEY,
    SchemaRevision,
    instantiate,
    instantiate_learning_object,
    instantiate_many,
    instantiate_outcome,
    instantiate_strategy,
    instantiate_user,
)
from domain.users import User
from domain.value_objects import AcademicLevel, Length, Restriction, StandardOutcome, Status


@pytest.fixture
def reconstruction_env(monkeypatch):
    """Set reconstruction flags through the environment for one test."""

    def apply(**flags: str) -> None:
        for name, value in flags.items():
            monkeypatch.setenv(name, value)
        config.reload_config()

    yield apply
    monkeypatch.undo()
    config.reload_config()


# =============================================================================
# Field tables
# =============================================================================


class TestFieldTables:

    def test_private_attribute_comes_first(self):
        keys = [alias.key for alias in LEARNING_OBJECT_FIELDS["name"]]
        assert keys == ["_name", "name"]

    def test_pre_release_keys_come_last(self):
        aliases = LEARNING_OBJECT_FIELDS["levels"]
        assert [alias.key for alias in aliases] == ["_levels", "levels", "level"]
        assert aliases[-1].revision is SchemaRevision.PRE_RELEASE


# =============================================================================
# Users
# =============================================================================


class TestUserReconstruction:

    def test_public_property_names(self):
        user = instantiate_user({"username": "nvisal1", "name": "Nick Visalli", "email": "nick@example.edu"})
        assert user.username == "nvisal1"
        assert user.name == "Nick Visalli"

    def test_private_attribute_names(self):
        user = instantiate_user({"_username": "nvisal1", "_bio": "Hi", "_emailVerified": True})
        assert user.username == "nvisal1"
        assert user.bio == "Hi"
        assert user.email_verified is True

    def test_created_at(self):
        user = instantiate_user({"username": "nvisal1", "createdAt": "1537300000000"})
        assert to_epoch_millis(user.created_at) == "1537300000000"

    def test_unknown_keys_kept(self):
        user = instantiate_user({"username": "nvisal1", "favoriteColor": "green"})
        assert user.extensions == {"favoriteColor": "green"}
        assert user.to_dict()["favoriteColor"] == "green"

    def test_classmethod(self):
        assert User.instantiate({"username": "nvisal1"}).username == "nvisal1"


# =============================================================================
# Aliases, shadowing, extensions
# =============================================================================


class TestAliasResolution:

    def test_private_key_wins(self):
        learning_object = instantiate_learning_object({"_name": "Current", "name": "Older"})
        assert learning_object.name == "Current"

    def test_shadowed_value_preserved(self):
        learning_object = instantiate_learning_object({"_name": "Current", "name": "Older"})
        assert learning_object.extensions[SHADOWED_FIELDS_KEY] == {"name": "Older"}

    def test_shadowed_value_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="clark.reconstruction"):
            instantiate_learning_object({"_name": "Current", "name": "Older"})
        assert "shadowed_field" in caplog.text

    def test_agreeing_values_are_not_shadowed(self):
        learning_object = instantiate_learning_object({"_name": "Same", "name": "Same"})
        assert SHADOWED_FIELDS_KEY not in learning_object.extensions

    def test_none_counts_as_absent(self):
        learning_object = instantiate_learning_object({"_name": None, "name": "Fallback"})
        assert learning_object.name == "Fallback"
        assert learning_object.extensions == {}

    def test_shadowing_can_be_disabled(self, reconstruction_env):
        reconstruction_env(CLARK_PRESERVE_SHADOWED_FIELDS="false")
        learning_object = instantiate_learning_object({"_name": "Current", "name": "Older"})
        assert learning_object.name == "Current"
        assert learning_object.extensions == {}

    def test_unknown_keys_go_to_extensions(self):
        learning_object = instantiate_learning_object({"name": "Intro", "reviewNotes": "ok", "__v": 0})
        assert learning_object.extensions == {"reviewNotes": "ok", "__v": 0}

    def test_pre_release_level_and_repository(self):
        learning_object = instantiate_learning_object({
            "name": "Legacy",
            "level": ["graduate"],
            "repository": {"notes": "From the old store"},
        })
        assert learning_object.levels == (AcademicLevel.GRADUATE,)
        assert learning_object.materials.notes == "From the old store"

    def test_single_level_string(self):
        learning_object = instantiate_learning_object({"levels": "high"})
        assert learning_object.levels == (AcademicLevel.HIGH,)

    def test_empty_name_keeps_blank_default(self):
        assert instantiate_learning_object({"name": ""}).name == ""


# =============================================================================
# Full documents
# =============================================================================


class TestPersistedDocument:

    @pytest.fixture
    def rebuilt(self, persisted_document) -> LearningObject:
        return instantiate_learning_object(persisted_document)

    def test_scalars(self, rebuilt):
        assert rebuilt.id == "5b9fd6f31b2f3c1c7c6c0a11"
        assert rebuilt.author.username == "nvisal1"
        assert rebuilt.name == "Intro to Testing"
        assert rebuilt.description == "Unit testing fundamentals"
        assert rebuilt.length is Length.MODULE
        assert rebuilt.levels == (AcademicLevel.UNDERGRADUATE, AcademicLevel.GRADUATE)
        assert rebuilt.collection == "nccp"

    def test_date_is_restored(self, rebuilt):
        assert to_epoch_millis(rebuilt.date) == "1537300000000"

    def test_status_and_published(self, rebuilt):
        assert rebuilt.status is Status.RELEASED
        assert rebuilt.published

    def test_outcome(self, rebuilt):
        outcome = rebuilt.outcomes[0]
        assert outcome.tag == 3
        assert outcome.outcome == "implement a unit test"
        assert outcome.name == "Intro to Testing"
        assert outcome.mappings == (StandardOutcome(
            author="NCWF",
            name="Software Developer",
            date="2017",
            outcome="Knowledge of software debugging principles",
        ),)
        assert outcome.assessments[0].plan == "lab exercise"
        assert outcome.assessments[0].text == "Write three tests"
        assert outcome.strategies[0].instruction == "lab"

    def test_materials_and_metrics(self, rebuilt):
        assert rebuilt.materials.files[0].size == 1024
        assert rebuilt.materials.urls[0].title == "pytest docs"
        assert rebuilt.materials.pdf.name == "0ReadMeFirst.pdf"
        assert rebuilt.metrics.downloads == 12

    def test_relations(self, rebuilt):
        assert [g.text for g in rebuilt.goals] == ["Write tests before code"]
        assert rebuilt.children == ()
        assert rebuilt.child_references == ("5b9fd6f31b2f3c1c7c6c0a12",)
        assert rebuilt.contributors[0].username == "skaza"
        assert rebuilt.lock.restricts(Restriction.DOWNLOAD)

    def test_extensions(self, rebuilt):
        assert rebuilt.extensions == {"reviewNotes": "Looks good"}

    def test_rebuilding_is_not_a_modification(self, rebuilt):
        assert rebuilt.version == 0
        assert not rebuilt.has_pending_events
        assert rebuilt.is_healthy

    def test_live_tags_continue_after_persisted_ones(self, rebuilt):
        index = rebuilt.add_outcome()
        assert rebuilt.outcomes[index].tag == 4

    def test_classmethod(self, persisted_document):
        assert LearningObject.instantiate(persisted_document).name == "Intro to Testing"


class TestRoundTrip:

    def test_complete_object(self, complete_object):
        data = complete_object.to_dict()
        rebuilt = instantiate_learning_object(data)
        assert rebuilt.to_dict() == data

    def test_children_are_rebuilt(self, complete_object):
        rebuilt = instantiate_learning_object(complete_object.to_dict())
        assert rebuilt.children[0].name == "Test Doubles"
        assert rebuilt.children[0].outcomes[0].name == "Test Doubles"

    @pytest.mark.parametrize("length", ["nanomodule", "micromodule", "module", "unit", "course"])
    def test_every_length(self, learning_object, length):
        learning_object.length = length
        assert instantiate_learning_object(learning_object.to_dict()).length.value == length

    @pytest.mark.parametrize("status", ["rejected", "waiting", "reviewed", "proofing", "released"])
    def test_every_status(self, learning_object, status):
        learning_object.status = status
        rebuilt = instantiate_learning_object(learning_object.to_dict())
        assert rebuilt.status.value == status
        assert rebuilt.published == (status == "released")


# =============================================================================
# Outcomes and their parts
# =============================================================================


class TestOutcomeReconstruction:

    def test_standalone_source_snapshot(self):
        outcome = instantiate_outcome({
            "bloom": "apply",
            "verb": "implement",
            "text": "a unit test",
            "author": "Nick Visalli",
            "name": "Intro to Testing",
            "date": "1537300000000",
        })
        assert outcome.author == "Nick Visalli"
        assert outcome.name == "Intro to Testing"
        assert outcome.date == "1537300000000"

    def test_author_mapping_becomes_name(self):
        outcome = instantiate_outcome({"author": {"_username": "nvisal1", "_name": "Nick Visalli"}})
        assert outcome.author == "Nick Visalli"

    def test_duplicate_tags_are_reassigned(self):
        learning_object = instantiate_learning_object({"outcomes": [{"tag": 1}, {"tag": 1}]})
        assert [o.tag for o in learning_object.outcomes] == [1, 2]

    def test_non_integer_tag(self):
        with pytest.raises(ReconstructionError):
            instantiate_outcome({"tag": "first"})

    def test_outcomes_serialized_as_json_strings(self):
        learning_object = instantiate_learning_object({
            "outcomes": [
                '{"_tag": 4, "_bloom": "apply", "_verb": "implement", "_text": "a unit test"}',
                {"tag": 5, "bloom": "create", "text": "a test plan"},
            ],
        })
        assert [o.tag for o in learning_object.outcomes] == [4, 5]
        assert learning_object.outcomes[0].outcome == "implement a unit test"

    def test_malformed_json_outcome(self):
        with pytest.raises(ReconstructionError) as exc_info:
            instantiate_learning_object({"outcomes": ["{not json"]})
        assert exc_info.value.entity_type == "LearningOutcome"

    def test_json_outcome_must_be_an_object(self):
        with pytest.raises(InvalidOutcome):
            instantiate_learning_object({"outcomes": ["[1, 2]"]})

    def test_assessment_without_source_bloom_uses_outcome(self):
        outcome = instantiate_outcome({"bloom": "create", "assessments": [{"text": "Build it"}]})
        assert outcome.assessments[0].source_bloom == "create"

    def test_pre_release_strategy_plan_key(self):
        strategy = instantiate_strategy({"sourceBloom": "apply", "plan": "lab"})
        assert strategy.instruction == "lab"

    def test_classmethods(self):
        assert LearningOutcome.instantiate({"bloom": "apply"}).bloom == "apply"
        assert AssessmentPlan.instantiate({"sourceBloom": "apply", "plan": "case study"}).plan == "case study"
        assert InstructionalStrategy.instantiate({"sourceBloom": "apply"}).source_bloom == "apply"
        assert LearningGoal.instantiate({"_text": "Goal"}).text == "Goal"


# =============================================================================
# Failures
# =============================================================================


class TestReconstructionFailures:

    @pytest.mark.parametrize("bag", [None, [], "Intro to Testing", 42])
    def test_non_mapping_rejected(self, bag):
        with pytest.raises(ReconstructionError) as exc_info:
            instantiate_learning_object(bag)
        assert exc_info.value.entity_type == "LearningObject"

    def test_non_list_collection_rejected(self):
        with pytest.raises(ReconstructionError):
            instantiate_learning_object({"outcomes": {"tag": 1}})

    def test_invalid_length(self):
        with pytest.raises(InvalidLength):
            instantiate_learning_object({"_length": "semester"})

    def test_invalid_status(self):
        with pytest.raises(InvalidStatus):
            instantiate_learning_object({"status": "archived"})

    def test_empty_levels(self):
        with pytest.raises(InvalidLevels):
            instantiate_learning_object({"levels": []})

    def test_duplicate_levels(self):
        with pytest.raises(LevelExists):
            instantiate_learning_object({"levels": ["graduate", "graduate"]})

    @pytest.mark.parametrize("field", ["date", "_date"])
    def test_out_of_range_date(self, field):
        with pytest.raises(InvalidDate):
            instantiate_learning_object({field: "99999999999999999999"})

    def test_out_of_range_author_created_at(self):
        with pytest.raises(InvalidDate):
            instantiate_user({"username": "nvisal1", "createdAt": "99999999999999999999"})

    def test_invalid_author(self):
        with pytest.raises(InvalidAuthor):
            instantiate_learning_object({"author": 7})

    def test_username_only_author(self):
        assert instantiate_learning_object({"author": "nvisal1"}).author.username == "nvisal1"

    def test_published_flag_mismatch_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="clark.reconstruction"):
            learning_object = instantiate_learning_object({"status": "waiting", "published": True})
        assert not learning_object.published
        assert "published_flag_mismatch" in caplog.text

    def test_published_flag_mismatch_warning_can_be_disabled(self, reconstruction_env, caplog):
        reconstruction_env(CLARK_WARN_PUBLISHED_MISMATCH="false")
        with caplog.at_level(logging.WARNING, logger="clark.reconstruction"):
            instantiate_learning_object({"status": "waiting", "published": True})
        assert "published_flag_mismatch" not in caplog.text


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:

    def test_instantiate_by_type(self):
        assert isinstance(instantiate("User", {"username": "nvisal1"}), User)
        assert isinstance(instantiate("LearningObject", {}), LearningObject)

    def test_unknown_type(self):
        with pytest.raises(ReconstructionError) as exc_info:
            instantiate("Rating", {})
        assert exc_info.value.entity_type == "Rating"

    def test_instantiate_many(self):
        users = instantiate_many("User", [{"username": "a"}, {"_username": "b"}])
        assert [user.username for user in users] == ["a", "b"]
