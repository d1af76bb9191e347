"""
Round snapshot assembly.

Joins the raw data gathered from the chain into ValidatorRecords. Everything
here works on already-fetched data; nothing is re-queried mid-round.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from nominator.errors import DataUnavailable
from nominator.models.validator import (
    EraPoints,
    Exposure,
    ValidatorAccount,
    ValidatorIdentity,
    ValidatorRecord,
)

logger = logging.getLogger(__name__)


def average_era_points(address: str, eras_points: Sequence[EraPoints]) -> float:
    """Average points earned by one validator per era over the window."""
    if not eras_points:
        return 0.0
    return sum(ep.individual.get(address, 0) for ep in eras_points) / len(eras_points)


def average_era_points_of_all(eras_points: Sequence[EraPoints]) -> float:
    """Average points earned by the whole validator set per era over the window."""
    if not eras_points:
        return 0.0
    return sum(ep.total for ep in eras_points) / len(eras_points)


def slashed_validators(slashes: Iterable[Mapping[str, int]]) -> set:
    """Addresses with a positive slash amount in any of the given eras."""
    return {
        address
        for era_slashes in slashes
        for address, amount in era_slashes.items()
        if amount > 0
    }


def build_validator_records(
    stashes: Iterable[str],
    identities: Mapping[str, ValidatorIdentity],
    accounts: Mapping[str, ValidatorAccount],
    exposures: Mapping[str, Exposure],
    eras_points: Sequence[EraPoints],
    slashes: Iterable[Mapping[str, int]],
) -> List[ValidatorRecord]:
    """
    Build one ValidatorRecord per stash.

    Stashes without staking preferences are skipped (they stopped validating
    between queries). avg_era_points_of_all is computed once and shared by
    every record.

    Raises:
        DataUnavailable: if two stashes resolve to the same account id
    """
    avg_of_all = average_era_points_of_all(eras_points)
    slashed = slashed_validators(slashes)

    records: Dict[str, ValidatorRecord] = {}
    for stash in sorted(stashes):
        account = accounts.get(stash)
        if account is None:
            logger.debug(f"No staking preferences for {stash}, skipping")
            continue
        if account.account_id in records:
            raise DataUnavailable(f"Duplicate validator account {account.account_id}")

        exposure = exposures.get(stash) or Exposure()
        records[account.account_id] = ValidatorRecord(
            account_id=account.account_id,
            stash_id=account.stash_id,
            controller_id=account.controller_id,
            commission_rate=account.commission_rate,
            blocked=account.blocked,
            identity=identities.get(stash) or ValidatorIdentity(),
            stake_exposure=exposure.nomination,
            avg_era_points=average_era_points(account.account_id, eras_points),
            avg_era_points_of_all=avg_of_all,
            was_slashed=account.account_id in slashed,
        )

    return list(records.values())
