"""
Chain-facing services and the pure score engine.

- chain_data: typed relay chain reads (ChainDataGateway)
- scorer: validator scoring formula (Scorer)
- submitter: nomination extrinsic submission (NominationSubmitter)
"""
from nominator.services.chain_data import ChainDataGateway
from nominator.services.scorer import Scorer, round_half_away_from_zero
from nominator.services.submitter import NominationSubmitter

__all__ = [
    "ChainDataGateway",
    "NominationSubmitter",
    "Scorer",
    "round_half_away_from_zero",
]
