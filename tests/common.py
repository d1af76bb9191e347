"""
Shared test helpers: record factories and fake chain collaborators.

Use these from conftest.py fixtures or individual tests.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

from nominator.models.validator import (
    EraPoints,
    Exposure,
    ScoringCoefficients,
    ValidatorAccount,
    ValidatorIdentity,
    ValidatorRecord,
)

# Well-known dev account addresses
ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
CHARLIE = "5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y"

TOKEN = 10**12

DEFAULT_COEFFICIENTS = ScoringCoefficients(
    commission_weight=100, nomination_weight=1000, era_points_weight=10
)


def make_record(account_id: str = "validator-a", **overrides: Any) -> ValidatorRecord:
    """Validator record that scores 12595 with DEFAULT_COEFFICIENTS unless overridden."""
    fields: Dict[str, Any] = {
        "account_id": account_id,
        "stash_id": account_id,
        "controller_id": account_id,
        "commission_rate": 0.05,
        "blocked": False,
        "identity": ValidatorIdentity(has_identity=True, display="Alice"),
        "stake_exposure": 1 * TOKEN,
        "avg_era_points": 500,
        "avg_era_points_of_all": 400,
        "was_slashed": False,
    }
    fields.update(overrides)
    return ValidatorRecord(**fields)


class AsyncIter:
    """Async iterator over (key, value) pairs, like a substrate query_map result."""

    def __init__(self, items: Iterable):
        self._items = list(items)

    def __aiter__(self):
        self._iter = iter(self._items)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def scale(value: Any) -> MagicMock:
    """Mimic a decoded ScaleObj exposing `.value`."""
    obj = MagicMock()
    obj.value = value
    return obj


class FakeGateway:
    """
    In-memory ChainDataGateway with a three-validator snapshot.

    Alice and Bob have identities and score; Charlie has no identity and
    scores 0. Any method can be replaced with an AsyncMock in a test.
    """

    def __init__(self, active_era: int = 10, max_validators: int = 16):
        self.active_era = active_era
        self.max_validators = max_validators
        self.stashes = {ALICE, BOB, CHARLIE}
        self.identities = {
            ALICE: ValidatorIdentity(has_identity=True, display="Alice"),
            BOB: ValidatorIdentity(has_identity=True, display="Bob"),
            CHARLIE: ValidatorIdentity(has_identity=False),
        }
        self.accounts = {
            s: ValidatorAccount(
                account_id=s, stash_id=s, controller_id=s, commission_rate=0.05, blocked=False
            )
            for s in self.stashes
        }
        self.exposures = {
            ALICE: Exposure(total=2 * TOKEN, own=1 * TOKEN),
            BOB: Exposure(total=3 * TOKEN, own=1 * TOKEN),
            CHARLIE: Exposure(total=6 * TOKEN, own=1 * TOKEN),
        }
        self.eras = [8, 9]
        self.eras_points = [
            EraPoints(era=e, total=800, individual={ALICE: 500, BOB: 300}) for e in self.eras
        ]
        self.slashes: Dict[int, Dict[str, int]] = {e: {} for e in self.eras}
        self.coefficients = DEFAULT_COEFFICIENTS
        self.prefs_reads = 0

    async def fetch_active_era(self) -> int:
        return self.active_era

    async def fetch_validator_prefs(self):
        self.prefs_reads += 1
        return {s: {"commission": 50_000_000, "blocked": False} for s in self.stashes}

    async def list_validator_stashes(self, prefs=None):
        return set(self.stashes if prefs is None else prefs)

    async def list_historic_eras(self, include_current: bool = False) -> List[int]:
        return list(self.eras) + ([self.active_era] if include_current else [])

    async def fetch_token_decimals(self) -> int:
        return 12

    async def fetch_scoring_coefficients(self) -> ScoringCoefficients:
        return self.coefficients

    async def fetch_max_validators(self) -> int:
        return self.max_validators

    async def fetch_identities(self, stashes):
        return {s: self.identities[s] for s in stashes}

    async def fetch_validator_accounts(self, stashes, prefs=None):
        return {s: self.accounts[s] for s in stashes if s in self.accounts}

    async def fetch_exposures(self, stashes, era: int):
        return {s: self.exposures.get(s, Exposure()) for s in stashes}

    async def fetch_era_points(self, eras):
        return [ep for ep in self.eras_points if ep.era in set(eras)]

    async def fetch_era_slashes(self, era: int):
        return dict(self.slashes.get(era, {}))


def make_submitter(extrinsic_hash: str = "0xfeed") -> MagicMock:
    submitter = MagicMock()
    submitter.submit = AsyncMock(return_value=extrinsic_hash)
    return submitter


class ScriptedSource:
    """Trigger source that emits given triggers one by one, then fails with `error`."""

    def __init__(self, orchestrator, triggers: Iterable, error: Optional[BaseException] = None):
        self.orchestrator = orchestrator
        self.triggers = list(triggers)
        self.error = error

    async def run(self, queue: asyncio.Queue) -> None:
        for trigger in self.triggers:
            await queue.put(trigger)
            await asyncio.sleep(0.05)
            while self.orchestrator.round_in_flight:
                await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        await asyncio.Event().wait()
