"""
Project-wide pytest fixtures.

Use these across test modules. Helpers live in tests.common.
"""
from __future__ import annotations

import logging

import pytest

from tests.common import DEFAULT_COEFFICIENTS, FakeGateway, make_submitter
from nominator.models.validator import ScoringPolicy, SelectionPolicy
from nominator.round_orchestrator import NominationRoundOrchestrator

logger = logging.getLogger(__name__)


@pytest.fixture
def coefficients():
    return DEFAULT_COEFFICIENTS


@pytest.fixture
def scoring_policy():
    """Commission cap 7.5%, 12 token decimals."""
    return ScoringPolicy(max_commission_rate=0.075, token_decimals=12)


@pytest.fixture
def selection_policy():
    return SelectionPolicy(max_validators=16)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def submitter():
    return make_submitter()


@pytest.fixture
def orchestrator(gateway, submitter):
    config = {"era_window": 28, "max_commission_rate": 0.075, "tie_break_by_stake": True}
    return NominationRoundOrchestrator(gateway, submitter, config)
