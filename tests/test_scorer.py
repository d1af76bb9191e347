"""
Tests for the validator score engine.
"""
import pytest

from nominator.models.validator import ScoringPolicy, ValidatorIdentity
from nominator.services.scorer import Scorer, round_half_away_from_zero
from tests.common import TOKEN, make_record


class TestScoreValidator:
    """Tests for Scorer.score_validator."""

    def test_reference_validator(self, coefficients, scoring_policy):
        """Alice: n=1, commission factor 95, era points ratio 1.25 -> 95 + 12500."""
        record = make_record()
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 12595

    def test_blocked_validator_scores_zero(self, coefficients, scoring_policy):
        record = make_record(blocked=True)
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    def test_missing_identity_scores_zero(self, coefficients, scoring_policy):
        record = make_record(identity=ValidatorIdentity(has_identity=False))
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    def test_identity_without_display_scores_zero(self, coefficients, scoring_policy):
        record = make_record(identity=ValidatorIdentity(has_identity=True, display=None))
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    @pytest.mark.parametrize("stake", [0, 1, TOKEN - 1])
    def test_less_than_one_token_scores_zero(self, coefficients, scoring_policy, stake):
        record = make_record(stake_exposure=stake)
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    def test_slashed_validator_scores_zero(self, coefficients, scoring_policy):
        record = make_record(was_slashed=True)
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    def test_commission_above_cap_scores_zero(self, coefficients, scoring_policy):
        record = make_record(commission_rate=0.1)
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 0

    def test_commission_at_cap_is_scored(self, coefficients, scoring_policy):
        record = make_record(commission_rate=0.075)
        assert Scorer.score_validator(record, coefficients, scoring_policy) > 0

    def test_commission_cap_disabled(self, coefficients):
        policy = ScoringPolicy(max_commission_rate=None, token_decimals=12)
        record = make_record(commission_rate=0.1)
        # 100 * 0.9 + 12500
        assert Scorer.score_validator(record, coefficients, policy) == 12590

    def test_zero_era_points_of_all_does_not_divide(self, coefficients, scoring_policy):
        record = make_record(avg_era_points=0, avg_era_points_of_all=0)
        assert Scorer.score_validator(record, coefficients, scoring_policy) == 95

    def test_larger_nomination_lowers_score(self, coefficients, scoring_policy):
        small = make_record(stake_exposure=1 * TOKEN)
        large = make_record(stake_exposure=4 * TOKEN)
        # 95 + 12500 / 4
        assert Scorer.score_validator(large, coefficients, scoring_policy) == 3220
        assert Scorer.score_validator(small, coefficients, scoring_policy) > 3220

    def test_nomination_uses_token_decimals(self, coefficients):
        policy = ScoringPolicy(max_commission_rate=0.075, token_decimals=10)
        record = make_record(stake_exposure=10**12)
        # 100 whole tokens at 10 decimals: 95 + 12500 / 100
        assert Scorer.score_validator(record, coefficients, policy) == 220


class TestScoreValidators:
    """Tests for batch scoring."""

    def test_inputs_are_not_mutated(self, coefficients, scoring_policy):
        records = [make_record("a"), make_record("b", blocked=True)]
        scored = Scorer.score_validators(records, coefficients, scoring_policy)

        assert [r.score for r in scored] == [12595, 0]
        assert all(r.score is None for r in records)

    def test_repeated_scoring_is_identical(self, coefficients, scoring_policy):
        records = [make_record(f"v{i}", stake_exposure=(i + 1) * TOKEN) for i in range(5)]
        first = Scorer.score_validators(records, coefficients, scoring_policy)
        second = Scorer.score_validators(records, coefficients, scoring_policy)
        assert [r.model_dump() for r in first] == [r.model_dump() for r in second]


class TestRounding:
    """Tests for half-away-from-zero rounding."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (-2.5, -3), (0.0, 0), (12595.000000000002, 12595)],
    )
    def test_round_half_away_from_zero(self, value, expected):
        assert round_half_away_from_zero(value) == expected
