"""
Tests for domain/outcomes.py - Learning Outcomes.

Covers:
- Taxon, verb and text validation
- Mappings to other outcomes
- Assessment plans and instructional strategies
- The Outcome interface (author, name, date, outcome)
"""
import pytest

from core.errors import (
    InvalidAssessmentPlan,
    InvalidBloom,
    InvalidInstruction,
    InvalidMapping,
    InvalidText,
    InvalidVerb,
)
from core.taxonomy import get_taxonomy
from core.validation import to_epoch_millis
from domain.outcomes import (
    AssessmentPlan,
    InstructionalStrategy,
    LearningGoal,
    LearningOutcome,
    outcome_summary,
)
from domain.value_objects import OutcomeSource, StandardOutcome


# =============================================================================
# Bloom, verb, text
# =============================================================================


class TestTaxonAndVerb:

    def test_blank_outcome_defaults(self):
        outcome = LearningOutcome()
        taxonomy = get_taxonomy()
        assert outcome.bloom == taxonomy.default_bloom
        assert outcome.verb == taxonomy.default_verb(taxonomy.default_bloom)
        assert outcome.text == ""
        assert outcome.tag is None

    def test_invalid_bloom(self):
        outcome = LearningOutcome()
        with pytest.raises(InvalidBloom):
            outcome.bloom = "juggle"
        assert outcome.bloom == "remember"

    def test_verb_must_match_current_bloom(self):
        outcome = LearningOutcome(bloom="apply")
        with pytest.raises(InvalidVerb):
            outcome.verb = "define"

    def test_changing_bloom_resets_incompatible_verb(self):
        outcome = LearningOutcome(bloom="apply", verb="implement")
        outcome.bloom = "create"
        assert outcome.verb == get_taxonomy().default_verb("create")

    def test_reassigning_bloom_keeps_verb(self):
        outcome = LearningOutcome(bloom="understand", verb="compare")
        outcome.bloom = "understand"
        assert outcome.verb == "compare"

    def test_text_is_trimmed(self):
        outcome = LearningOutcome()
        outcome.text = "  a unit test  "
        assert outcome.text == "a unit test"

    def test_empty_text_allowed_for_drafts(self):
        outcome = LearningOutcome(text="something")
        outcome.text = "   "
        assert outcome.text == ""

    def test_none_text_rejected(self):
        outcome = LearningOutcome()
        with pytest.raises(InvalidText):
            outcome.text = None

    def test_custom_taxonomy(self, custom_taxonomy):
        outcome = LearningOutcome()
        assert outcome.bloom == "recall"
        assert outcome.verb == "list"
        with pytest.raises(InvalidBloom):
            outcome.bloom = "apply"


# =============================================================================
# Mappings
# =============================================================================


class TestMappings:

    @pytest.fixture
    def standard(self) -> StandardOutcome:
        return StandardOutcome(
            author="NCWF",
            name="Software Developer",
            date="2017",
            outcome="Knowledge of software debugging principles",
        )

    def test_map_to_returns_index(self, outcome, standard):
        other = LearningOutcome(bloom="analyze", verb="examine", text="a failing test")
        assert outcome.map_to(standard) == 0
        assert outcome.map_to(other) == 1
        assert outcome.mappings == (standard, other)

    def test_mapping_is_not_owned(self, outcome):
        other = LearningOutcome(text="shared")
        outcome.map_to(other)
        outcome.unmap(0)
        assert other.text == "shared"

    def test_unmap_returns_removed(self, outcome, standard):
        outcome.map_to(standard)
        assert outcome.unmap(0) is standard
        assert outcome.mappings == ()

    def test_unmap_out_of_range(self, outcome):
        with pytest.raises(IndexError):
            outcome.unmap(0)

    @pytest.mark.parametrize("value", [None, "apply", {"outcome": "x"}, 3])
    def test_non_outcome_rejected(self, outcome, value):
        with pytest.raises(InvalidMapping):
            outcome.map_to(value)


# =============================================================================
# Assessments and strategies
# =============================================================================


class TestAssessments:

    def test_assessment_seeded_with_bloom(self):
        outcome = LearningOutcome(bloom="apply")
        plan = outcome.add_assessment()
        assert plan.source_bloom == "apply"
        assert plan.plan == get_taxonomy().default_assessment("apply")
        assert outcome.assessments == (plan,)

    def test_plan_validated_against_source_bloom(self):
        plan = LearningOutcome(bloom="apply").add_assessment()
        plan.plan = "lab exercise"
        with pytest.raises(InvalidAssessmentPlan):
            plan.plan = "multiple choice questions"

    def test_plan_not_revalidated_after_bloom_change(self):
        outcome = LearningOutcome(bloom="apply")
        plan = outcome.add_assessment()
        plan.plan = "lab exercise"
        outcome.bloom = "remember"
        assert plan.source_bloom == "apply"
        assert plan.plan == "lab exercise"
        assert not plan.is_stale

    def test_text_freely_settable(self):
        plan = AssessmentPlan("apply")
        plan.text = "Write three tests"
        assert plan.text == "Write three tests"
        plan.text = None
        assert plan.text == ""

    def test_remove_assessment(self):
        outcome = LearningOutcome()
        first = outcome.add_assessment()
        outcome.add_assessment()
        assert outcome.remove_assessment(0) is first
        assert len(outcome.assessments) == 1

    def test_unknown_source_bloom_rejected(self):
        with pytest.raises(InvalidBloom):
            AssessmentPlan("juggle")


class TestStrategies:

    def test_strategy_seeded_with_bloom(self):
        strategy = LearningOutcome(bloom="create").add_strategy()
        assert strategy.source_bloom == "create"
        assert strategy.instruction == get_taxonomy().default_instruction("create")

    def test_instruction_validated(self):
        strategy = InstructionalStrategy("apply")
        strategy.instruction = "lab"
        with pytest.raises(InvalidInstruction):
            strategy.instruction = "capstone"

    def test_remove_strategy(self):
        outcome = LearningOutcome()
        strategy = outcome.add_strategy()
        assert outcome.remove_strategy(0) is strategy
        assert outcome.strategies == ()

    def test_to_dict(self):
        strategy = InstructionalStrategy("apply")
        strategy.text = "Guided lab"
        assert strategy.to_dict() == {
            "sourceBloom": "apply",
            "instruction": get_taxonomy().default_instruction("apply"),
            "text": "Guided lab",
        }


# =============================================================================
# Outcome interface
# =============================================================================


class TestOutcomeInterface:

    def test_outcome_string(self, outcome):
        assert outcome.outcome == "implement a unit test for a pure function"

    def test_standalone_source_is_empty(self, outcome):
        assert outcome.source == OutcomeSource()
        assert outcome.author == ""

    def test_source_follows_owner(self, learning_object, outcome):
        learning_object.add_outcome(outcome)
        assert outcome.author == "Nick Visalli"
        assert outcome.name == "Intro to Testing"
        assert outcome.date == to_epoch_millis(learning_object.date)

        learning_object.name = "Testing 101"
        assert outcome.name == "Testing 101"

    def test_source_snapshot_kept_after_removal(self, learning_object, outcome):
        learning_object.add_outcome(outcome)
        learning_object.remove_outcome(0)
        learning_object.name = "Renamed"
        assert outcome.name == "Intro to Testing"

    def test_summary(self, learning_object, outcome):
        learning_object.add_outcome(outcome)
        assert outcome_summary(outcome) == {
            "author": "Nick Visalli",
            "name": "Intro to Testing",
            "date": to_epoch_millis(learning_object.date),
            "outcome": "implement a unit test for a pure function",
        }

    def test_to_dict(self, outcome):
        outcome.add_assessment()
        outcome.extensions["legacyId"] = 7
        data = outcome.to_dict()
        assert data["bloom"] == "apply"
        assert data["verb"] == "implement"
        assert data["outcome"] == "implement a unit test for a pure function"
        assert len(data["assessments"]) == 1
        assert data["legacyId"] == 7


class TestLearningGoal:

    def test_text(self):
        goal = LearningGoal("  Write tests first ")
        assert goal.text == "  Write tests first "
        assert goal.to_dict() == {"text": "  Write tests first "}

    def test_none_rejected(self):
        with pytest.raises(InvalidText):
            LearningGoal(None)

    def test_copy_is_independent(self):
        goal = LearningGoal("a")
        clone = goal.copy()
        clone.text = "b"
        assert goal.text == "a"
