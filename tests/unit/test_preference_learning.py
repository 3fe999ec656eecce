"""
Unit tests for preference_learning.py - Preference Model Updater.

Tests cover:
- Feedback signal and learning weight
- Ingredient, cuisine, flavor and method affinity smoothing
- Complexity comfort and timing weight updates
- Confidence and learning rate
- Bounds and monotonicity over long feedback sequences
- NotFound before any update
"""

import math
import pytest
from datetime import datetime

from meal_personalization.data.models import PreferenceModel
from meal_personalization.data.requests import PerceivedDifficulty
from meal_personalization.errors import NotFoundError
from meal_personalization.preference_learning import (
    feedback_signal,
    fold_feedback,
    learning_weight,
    process_feedback,
    smooth_affinity,
    time_bucket,
)


# =============================================================================
# Signal Tests
# =============================================================================

class TestFeedbackSignal:
    """Tests for converting feedback into a scalar signal."""

    def test_enthusiastic_feedback(self, make_feedback):
        """rating 5, satisfaction 9, repeat -> positive signal."""
        expected = (1 + 3.5 / 4.5 + 0.2) / 3
        assert feedback_signal(make_feedback()) == pytest.approx(expected)

    def test_negative_feedback(self, make_feedback):
        """rating 1, satisfaction 1, no repeat -> negative signal."""
        feedback = make_feedback(rating=1, satisfaction=1, would_make_again=False)
        expected = (-1 + -4.5 / 4.5 - 0.2) / 3
        assert feedback_signal(feedback) == pytest.approx(expected)

    def test_signal_within_bounds(self, make_feedback):
        """Every valid rating/satisfaction combination stays in [-1, 1]."""
        for rating in range(1, 6):
            for satisfaction in range(1, 11):
                for repeat in (True, False):
                    signal = feedback_signal(make_feedback(
                        rating=rating, satisfaction=satisfaction, would_make_again=repeat
                    ))
                    assert -1 <= signal <= 1


class TestLearningWeight:
    """Tests for how informative a feedback event is."""

    def test_base_weight(self, make_feedback):
        """Middling feedback without a comment weighs 0.5."""
        assert learning_weight(make_feedback(rating=3, satisfaction=5)) == 0.5

    def test_all_bonuses_capped(self, make_feedback):
        """Long comment, extreme rating and satisfaction cap at 1."""
        feedback = make_feedback(rating=5, satisfaction=10, comment="Loved every bite of this")
        assert learning_weight(feedback) == 1.0

    def test_short_comment_no_bonus(self, make_feedback):
        """Comments of 10 characters or fewer add nothing."""
        assert learning_weight(make_feedback(rating=3, satisfaction=5, comment="good")) == 0.5


class TestTimeBucket:
    """Tests for hour -> time bucket mapping."""

    @pytest.mark.parametrize("hour,bucket", [
        (6, "morning"), (10, "morning"),
        (11, "midday"), (14, "midday"),
        (15, "afternoon"), (18, "afternoon"),
        (19, "evening"), (22, "evening"),
        (23, "night"), (0, "night"), (5, "night"),
    ])
    def test_bucket_boundaries(self, hour, bucket):
        assert time_bucket(hour) == bucket


# =============================================================================
# Model Update Tests
# =============================================================================

class TestAffinityUpdates:
    """Tests for affinity smoothing."""

    def test_kale_scenario(self, make_feedback, kale_salad):
        """Prior affinity 0.0 and learning rate 0.55 yield a positive affinity <= 1."""
        model = PreferenceModel(user_id="user-1", ingredient_affinity={"kale": 0.0}, learning_rate=0.55)
        updated = process_feedback(make_feedback(), kale_salad, model)

        assert 0 < updated.ingredient_affinity["kale"] <= 1
        assert updated.ingredient_affinity["kale"] == pytest.approx(feedback_signal(make_feedback()) * 0.55)

    def test_smoothing_slows_near_bounds(self):
        """A score at 1 cannot move further up."""
        assert smooth_affinity(1.0, 1.0, 1.0) == 1.0
        assert smooth_affinity(0.9, 0.5, 1.0) == pytest.approx(0.95)
        assert smooth_affinity(-0.5, -1.0, 0.2) == pytest.approx(-0.6)

    def test_first_feedback_creates_model(self, make_feedback, kale_salad):
        """No current model: a new one is created for the feedback's user."""
        updated = process_feedback(make_feedback(), kale_salad, None)

        assert updated.user_id == "user-1"
        assert updated.ingredient_affinity["kale"] > 0
        assert updated.cuisine_affinity["american"] > 0

    def test_flavor_and_method_affinities(self, make_feedback, peanut_noodles):
        """Flavor tags come from the knowledge table; no method, no method affinity."""
        feedback = make_feedback(recipe_id=peanut_noodles.id)
        updated = process_feedback(feedback, peanut_noodles, None)

        assert set(updated.flavor_affinity) >= {"nutty", "sweet", "salty", "umami"}
        assert updated.cooking_method_affinity == {}

    def test_input_model_not_mutated(self, make_feedback, kale_salad, empty_model):
        """process_feedback returns a new model."""
        before = empty_model.to_dict()
        updated = process_feedback(make_feedback(), kale_salad, empty_model)

        assert empty_model.to_dict() == before
        assert updated is not empty_model


class TestComplexityAndTiming:
    """Tests for complexity comfort and timing weights."""

    def test_easier_and_satisfied_increases_comfort(self, make_feedback, kale_salad, empty_model):
        feedback = make_feedback(difficulty_perceived=PerceivedDifficulty.EASIER, satisfaction=9)
        assert process_feedback(feedback, kale_salad, empty_model).complexity_comfort == pytest.approx(0.55)

    def test_harder_and_unsatisfied_decreases_comfort(self, make_feedback, kale_salad, empty_model):
        feedback = make_feedback(difficulty_perceived="harder", satisfaction=3)
        assert process_feedback(feedback, kale_salad, empty_model).complexity_comfort == pytest.approx(0.45)

    def test_comfort_clamped(self, make_feedback, kale_salad):
        """Comfort never exceeds 1."""
        model = PreferenceModel(user_id="user-1", complexity_comfort=0.98)
        feedback = make_feedback(difficulty_perceived="easier", satisfaction=10)
        assert process_feedback(feedback, kale_salad, model).complexity_comfort == 1.0

    def test_satisfied_meal_increments_timing(self, make_feedback, kale_salad, empty_model):
        """Satisfaction > 7 adds 0.1 to the meal slot x bucket weight."""
        updated = process_feedback(make_feedback(satisfaction=8), kale_salad, empty_model)
        assert updated.timing_weights == {"dinner_evening": pytest.approx(0.1)}

    def test_unsatisfied_meal_leaves_timing(self, make_feedback, kale_salad, empty_model):
        updated = process_feedback(make_feedback(satisfaction=7), kale_salad, empty_model)
        assert updated.timing_weights == {}

    def test_timing_renormalized_above_two(self, make_feedback, kale_salad):
        """All weights are divided by the max once it exceeds 2."""
        model = PreferenceModel(
            user_id="user-1",
            timing_weights={"dinner_evening": 1.95, "lunch_midday": 1.0},
        )
        updated = process_feedback(make_feedback(), kale_salad, model)

        assert updated.timing_weights["dinner_evening"] == pytest.approx(1.0)
        assert updated.timing_weights["lunch_midday"] == pytest.approx(1.0 / 2.05)

    def test_morning_breakfast_key(self, make_feedback, kale_salad, empty_model):
        feedback = make_feedback(meal_type="Breakfast", consumed_at=datetime(2025, 3, 14, 7, 15))
        updated = process_feedback(feedback, kale_salad, empty_model)
        assert "breakfast_morning" in updated.timing_weights


class TestConfidenceAndCounters:
    """Tests for counters, confidence and learning rate."""

    def test_first_feedback_confidence(self, make_feedback, kale_salad, empty_model):
        """confidence = ln(2)/5; learning rate = 1 - confidence * 0.7."""
        updated = process_feedback(make_feedback(), kale_salad, empty_model)

        assert updated.interaction_count == 1
        assert updated.feedback_count == 1
        assert updated.confidence == pytest.approx(math.log(2) / 5)
        assert updated.learning_rate == pytest.approx(1 - math.log(2) / 5 * 0.7)

        """Large feedback counts saturate confidence; full confidence gives a 0.3 learning rate, above the 0.1 floor."""
        """Large feedback counts saturate confidence; learning rate floors at 0.3."""
        model = PreferenceModel(user_id="user-1", feedback_count=500, interaction_count=500)
        updated = process_feedback(make_feedback(), kale_salad, model)

        assert updated.confidence == 1.0
        assert updated.learning_rate == pytest.approx(0.3)

    def test_long_sequence_bounds_and_monotonic_confidence(self, make_feedback, kale_salad, peanut_noodles):
        """Affinities stay in [-1, 1]; confidence never decreases."""
        model = None
        previous_confidence = 0.0
        for i in range(60):
            recipe = kale_salad if i % 3 else peanut_noodles
            feedback = make_feedback(
                recipe_id=recipe.id,
                rating=5 if i % 2 else 1,
                satisfaction=10 if i % 2 else 1,
                would_make_again=bool(i % 2),
            )
            model = process_feedback(feedback, recipe, model)

            for score in model.ingredient_affinity.values():
                assert -1 <= score <= 1
            for score in model.flavor_affinity.values():
                assert -1 <= score <= 1
            assert 0 <= model.complexity_comfort <= 1
            assert 0.1 <= model.learning_rate <= 1
            assert model.confidence >= previous_confidence
            previous_confidence = model.confidence

        assert model.feedback_count == 60

    def test_confidence_never_lowered(self, make_feedback, kale_salad):
        """An imported model with high confidence keeps it."""
        model = PreferenceModel(user_id="user-1", confidence=0.9, feedback_count=2)
        assert process_feedback(make_feedback(), kale_salad, model).confidence == 0.9


class TestFailures:
    """Tests for all-or-nothing failure."""

    def test_missing_recipe_raises_not_found(self, make_feedback, empty_model):
        with pytest.raises(NotFoundError) as exc:
            process_feedback(make_feedback(), None, empty_model)
        assert exc.value.identifier == "recipe-kale-salad"

    def test_mismatched_recipe_raises_not_found(self, make_feedback, peanut_noodles, empty_model):
        """The recipe must be the one the feedback names."""
        with pytest.raises(NotFoundError):
            process_feedback(make_feedback(), peanut_noodles, empty_model)


class TestLearningEvent:
    """Tests for fold_feedback's LearningEvent."""

    def test_event_fields(self, make_feedback, kale_salad):
        feedback = make_feedback(comment="Crunchy and bright, will repeat")
        model, event = fold_feedback(feedback, kale_salad)

        assert event.event_type == "meal_completion"
        assert event.recipe_id == kale_salad.id
        assert event.satisfaction == 9
        assert event.would_make_again is True
        assert event.learning_weight == 1.0
        assert event.timestamp == feedback.consumed_at
        assert model.last_feedback_at == feedback.consumed_at
