"""
Orchestrator helpers: snapshot assembly, selection, trigger sources.

The main orchestrator lives in nominator.round_orchestrator. These modules
hold extracted logic to keep that file manageable.

- snapshot: join gathered chain data into ValidatorRecords
- selector: rank, tie-break and cap the nomination list
- triggers: timer and era-change trigger sources
"""
from nominator.orchestrator.selector import select_nominations
from nominator.orchestrator.snapshot import (
    average_era_points,
    average_era_points_of_all,
    build_validator_records,
    slashed_validators,
)
from nominator.orchestrator.triggers import EraChangeTrigger, IntervalTrigger

__all__ = [
    "EraChangeTrigger",
    "IntervalTrigger",
    "average_era_points",
    "average_era_points_of_all",
    "build_validator_records",
    "select_nominations",
    "slashed_validators",
]
