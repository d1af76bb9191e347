from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

from nominator.models.validator import (
    ScoringCoefficients,
    ScoringPolicy,
    ValidatorRecord,
)


def round_half_away_from_zero(value: float) -> int:
    """Round a float to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class Scorer:

    @staticmethod
    def score_validator(
        record: ValidatorRecord,
        coefficients: ScoringCoefficients,
        policy: ScoringPolicy,
    ) -> int:
        """
        Score one validator from round snapshot data.

            score = round(r * (crf * (1 - cr) + nf * (1 / n) * epf * (eep / eepa)) * sr)

        Intermediate arithmetic is float; only the final product is rounded,
        half away from zero.

        Args:
            record: Validator snapshot for the current round
            coefficients: Weights (crf, nf, epf) for this round
            policy: Commission cap and token decimals

        Returns:
            Non-negative integer score (0 means "do not nominate")
        """

        # -----------------------------
        # Nomination in whole tokens
        # -----------------------------
        n = record.stake_exposure // policy.token_unit
        if n == 0:
            # new or unbonded validators
            return 0

        # -----------------------------
        # Commission cap
        # -----------------------------
        cr = record.commission_rate
        if policy.max_commission_rate is not None and cr > policy.max_commission_rate:
            return 0

        # -----------------------------
        # Reputation and slash record
        # -----------------------------
        identity = record.identity
        r = 1 if identity.has_identity and identity.display and not record.blocked else 0
        sr = 0 if record.was_slashed else 1
        if r == 0 or sr == 0:
            return 0

        # -----------------------------
        # Weighted factors
        # -----------------------------
        commission_factor = coefficients.commission_weight * (1 - cr)

        if record.avg_era_points_of_all > 0:
            era_points_ratio = record.avg_era_points / record.avg_era_points_of_all
        else:
            era_points_ratio = 0.0

        nomination_factor = (
            coefficients.nomination_weight
            * (1 / n)
            * coefficients.era_points_weight
            * era_points_ratio
        )

        return round_half_away_from_zero(r * (commission_factor + nomination_factor) * sr)

    @staticmethod
    def score_validators(
        records: Iterable[ValidatorRecord],
        coefficients: ScoringCoefficients,
        policy: ScoringPolicy,
    ) -> List[ValidatorRecord]:
        """Return scored copies of records; inputs are left untouched."""
        return [
            record.model_copy(
                update={"score": Scorer.score_validator(record, coefficients, policy)}
            )
            for record in records
        ]
