"""
Data models for the nomination client.

- validator: per-validator chain data, scoring inputs and the nomination list
- round: round lifecycle state and triggers
"""
from nominator.models.round import Round, RoundState, Trigger, TriggerKind
from nominator.models.validator import (
    COMMISSION_RATE_DECIMAL,
    EraPoints,
    Exposure,
    NominationEntry,
    ScoringCoefficients,
    ScoringPolicy,
    SelectionPolicy,
    ValidatorAccount,
    ValidatorIdentity,
    ValidatorRecord,
)

__all__ = [
    "COMMISSION_RATE_DECIMAL",
    "EraPoints",
    "Exposure",
    "NominationEntry",
    "Round",
    "RoundState",
    "ScoringCoefficients",
    "ScoringPolicy",
    "SelectionPolicy",
    "Trigger",
    "TriggerKind",
    "ValidatorAccount",
    "ValidatorIdentity",
    "ValidatorRecord",
]
