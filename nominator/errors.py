"""
Error kinds raised across the nomination client.

Library exceptions from the substrate client are translated into these at the
gateway and submitter boundary so the orchestrator only ever reasons about
domain failures.
"""


class NominatorError(Exception):
    """Base class for all nomination client errors."""


class DataUnavailable(NominatorError):
    """A chain query failed or returned malformed data."""


class ConfigurationInvalid(NominatorError):
    """Scoring coefficients or the validator cap are missing or invalid."""


class SubmissionFailed(NominatorError):
    """Signing or sending the nomination extrinsic failed."""


class ConnectivityLost(NominatorError):
    """The chain client is disconnected. Fatal: the process must exit."""
