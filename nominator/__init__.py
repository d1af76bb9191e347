"""
Liquid-staking nomination client.

Scores relay chain validators from on-chain data and nominates the best of
them for a liquid-staking pool on a parachain, once per round.
"""
__version__ = "1.0.0"

from nominator.round_orchestrator import NominationRoundOrchestrator

__all__ = [
    "NominationRoundOrchestrator",
    "__version__",
]
