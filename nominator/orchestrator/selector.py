"""
Nomination list selection.

Ranks scored validators and applies the cap. Tie-breaking prefers the
lower-staked validator so stake spreads away from concentrated validators.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from nominator.models.validator import NominationEntry, SelectionPolicy, ValidatorRecord

logger = logging.getLogger(__name__)


def _rank_key(record: ValidatorRecord, tie_break_by_stake: bool) -> Tuple:
    if tie_break_by_stake:
        return (-record.score, record.stake_exposure, record.account_id)
    return (-record.score, record.account_id)


def select_nominations(
    records: Iterable[ValidatorRecord],
    policy: SelectionPolicy,
) -> List[NominationEntry]:
    """
    Select up to policy.max_validators nominations from scored records.

    Ordering: score descending, then stake exposure ascending (when
    tie_break_by_stake), then account id so equal inputs always give equal
    output. Zero-score validators are never included and the list is not
    padded.

    Args:
        records: Scored validator records of one round
        policy: Cap and tie-break configuration

    Returns:
        Ordered nomination entries, best first.
    """
    eligible = [r for r in records if r.score]
    ranked = sorted(eligible, key=lambda r: _rank_key(r, policy.tie_break_by_stake))
    selected = ranked[: policy.max_validators]

    logger.debug(
        f"Selected {len(selected)} of {len(eligible)} validators with nonzero score "
        f"(cap {policy.max_validators})"
    )
    return [
        NominationEntry(
            display_name=r.identity.display,
            account_id=r.account_id,
            stake_amount=r.stake_exposure,
            score=r.score,
        )
        for r in selected
    ]
