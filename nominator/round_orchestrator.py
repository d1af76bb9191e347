"""
Async Round Orchestrator for the liquid-staking nomination client.

Each round gathers a fresh relay chain snapshot, scores every validator,
selects the nomination list and submits one `LiquidStaking.nominate`
extrinsic on the parachain.

Orchestration logic is split across nominator.orchestrator:
- snapshot: join gathered data into ValidatorRecords
- selector: rank and cap the nomination list
- triggers: timer and era-change trigger sources
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from nominator.errors import (
    ConfigurationInvalid,
    ConnectivityLost,
    DataUnavailable,
    SubmissionFailed,
)
from nominator.models.round import Round, RoundState, Trigger, TriggerKind
from nominator.models.validator import (
    NominationEntry,
    ScoringCoefficients,
    ScoringPolicy,
    SelectionPolicy,
    ValidatorRecord,
)
from nominator.orchestrator.selector import select_nominations
from nominator.orchestrator.snapshot import build_validator_records
from nominator.services.chain_data import ChainDataGateway
from nominator.services.scorer import Scorer
from nominator.services.submitter import NominationSubmitter

logger = logging.getLogger(__name__)

DEFAULT_ERA_WINDOW = 28
DEFAULT_MAX_COMMISSION_RATE = 0.075


class NominationRoundOrchestrator:
    """
    Runs nomination rounds on demand from one trigger queue.

    At most one round is in flight; triggers arriving meanwhile are dropped.
    Triggers already processed (same tick, or an era at or before the last
    processed era) are skipped so a duplicate era event never produces a
    second submission.
    """

    def __init__(
        self,
        gateway: ChainDataGateway,
        submitter: NominationSubmitter,
        config: Dict,
    ):
        self.gateway = gateway
        self.submitter = submitter
        self.config = config
        self.era_window = int(config.get("era_window", DEFAULT_ERA_WINDOW))
        self.max_commission_rate = config.get("max_commission_rate", DEFAULT_MAX_COMMISSION_RATE)
        self.tie_break_by_stake = bool(config.get("tie_break_by_stake", True))

        self.queue: asyncio.Queue = asyncio.Queue()
        self.processed: Set[Tuple[TriggerKind, int]] = set()
        self.last_processed_era: Optional[int] = None
        self.last_round: Optional[Round] = None
        self._current: Optional[asyncio.Task] = None
        self._fatal: Optional[BaseException] = None

    @property
    def round_in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    def _skip_reason(self, trigger: Trigger) -> Optional[str]:
        if (trigger.kind, trigger.key) in self.processed:
            return "already processed"
        if (
            trigger.kind == TriggerKind.ERA
            and self.last_processed_era is not None
            and trigger.key <= self.last_processed_era
        ):
            return f"era {trigger.key} not after last processed era {self.last_processed_era}"
        return None

    def dispatch(self, trigger: Trigger) -> Optional[asyncio.Task]:
        """Start a round for a trigger, unless it must be dropped or skipped."""
        if self.round_in_flight:
            logger.warning(f"Round already in flight, dropping trigger {trigger}")
            return None
        reason = self._skip_reason(trigger)
        if reason:
            logger.info(f"Skipping trigger {trigger}: {reason}")
            return None

        self.processed.add((trigger.kind, trigger.key))
        if trigger.kind == TriggerKind.ERA:
            self.last_processed_era = trigger.key
        self._current = asyncio.create_task(self._run_round_task(trigger), name=f"round_{trigger}")
        return self._current

    async def _run_round_task(self, trigger: Trigger) -> None:
        try:
            await self.run_round(trigger)
        except ConnectivityLost as e:
            logger.critical(f"Connectivity lost during round {trigger}: {e}")
            self._stop(e)
        except Exception as e:
            logger.error(f"Unexpected error in round {trigger}: {e}", exc_info=True)
            if self.last_round is not None and not self.last_round.state.is_terminal:
                self.last_round.fail(f"unexpected error: {e}")

    def _stop(self, error: BaseException) -> None:
        self._fatal = error
        self.queue.put_nowait(None)

    async def _run_source(self, source) -> None:
        try:
            await source.run(self.queue)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.critical(f"Trigger source {type(source).__name__} stopped: {e}", exc_info=True)
            self._stop(e)

    async def serve(self, sources: Iterable) -> None:
        """
        Drain the trigger queue until a fatal error.

        Raises:
            ConnectivityLost: a chain connection dropped (process should exit)
        """
        source_tasks = [
            asyncio.create_task(self._run_source(s), name=f"trigger_{type(s).__name__}")
            for s in sources
        ]
        try:
            while True:
                trigger = await self.queue.get()
                if trigger is None:
                    break
                self.dispatch(trigger)
            if self._fatal is not None:
                raise self._fatal
        finally:
            pending = list(source_tasks)
            if self.round_in_flight:
                pending.append(self._current)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def _gather(
        self, round_: Round
    ) -> Tuple[List[ValidatorRecord], ScoringCoefficients, ScoringPolicy, SelectionPolicy]:
        """Collect a round snapshot. Independent queries run concurrently."""
        logger.info("Retrieving active era, validator stashes and round parameters...")
        (
            era,
            prefs,
            historic_eras,
            token_decimals,
            coefficients,
            max_validators,
        ) = await asyncio.gather(
            self.gateway.fetch_active_era(),
            self.gateway.fetch_validator_prefs(),
            self.gateway.list_historic_eras(include_current=False),
            self.gateway.fetch_token_decimals(),
            self.gateway.fetch_scoring_coefficients(),
            self.gateway.fetch_max_validators(),
        )
        round_.era = era
        stashes = await self.gateway.list_validator_stashes(prefs)
        window = historic_eras[-self.era_window :] if self.era_window > 0 else []
        logger.info(
            f"Era index: {era}, maxValidators: {max_validators}, "
            f"coefficients: {coefficients.model_dump()}"
        )
        logger.info(f"Last {len(window)} eras: {window}")

        logger.info(
            f"Retrieving identities, accounts, exposures, points and slashes "
            f"of {len(stashes)} validators..."
        )
        identities, accounts, exposures, eras_points, *slashes = await asyncio.gather(
            self.gateway.fetch_identities(stashes),
            self.gateway.fetch_validator_accounts(stashes, prefs=prefs),
            self.gateway.fetch_exposures(stashes, era),
            self.gateway.fetch_era_points(window),
            *[self.gateway.fetch_era_slashes(e) for e in window],
        )

        try:
            records = build_validator_records(
                stashes, identities, accounts, exposures, eras_points, slashes
            )
            scoring_policy = ScoringPolicy(
                max_commission_rate=self.max_commission_rate,
                token_decimals=token_decimals,
            )
            selection_policy = SelectionPolicy(
                max_validators=max_validators,
                tie_break_by_stake=self.tie_break_by_stake,
            )
        except ValueError as e:
            raise DataUnavailable(f"Malformed round snapshot: {e}") from e
        return records, coefficients, scoring_policy, selection_policy

    async def run_round(self, trigger: Trigger) -> Round:
        """
        Run one round: gather, score, select, submit.

        DataUnavailable, ConfigurationInvalid and SubmissionFailed end the
        round as failed without a submission. ConnectivityLost propagates.
        """
        round_ = Round(trigger=trigger)
        self.last_round = round_

        logger.info("=" * 60)
        logger.info(f"Starting nomination round {trigger}")
        logger.info("=" * 60)

        try:
            round_.advance(RoundState.GATHERING)
            records, coefficients, scoring_policy, selection_policy = await self._gather(round_)
            round_.validator_count = len(records)

            round_.advance(RoundState.SCORING)
            logger.info(f"Calculating scores of {len(records)} validators...")
            scored = Scorer.score_validators(records, coefficients, scoring_policy)

            round_.advance(RoundState.SELECTING)
            nominations = select_nominations(scored, selection_policy)
            round_.nominations = nominations
            self._log_nominations(nominations)
            if not nominations:
                round_.fail("no eligible validators")
                logger.warning(f"Round {trigger}: no validator has a nonzero score, nothing to nominate")
                return round_

            round_.advance(RoundState.SUBMITTING)
            logger.info("Nominating validators...")
            round_.extrinsic_hash = await self.submitter.submit(nominations)
            round_.advance(RoundState.DONE)
            logger.info(f"Completed nomination round {trigger} (era {round_.era})")
        except (DataUnavailable, ConfigurationInvalid, SubmissionFailed) as e:
            stage = round_.state.value
            round_.fail(str(e))
            logger.error(
                f"Round {trigger} failed while {stage} "
                f"({type(e).__name__}): {e}",
                exc_info=True,
            )
        return round_

    @staticmethod
    def _log_nominations(nominations: List[NominationEntry]) -> None:
        for rank, entry in enumerate(nominations, start=1):
            logger.info(
                f"  #{rank} {entry.account_id} ({entry.display_name or 'no identity'}) "
                f"score={entry.score} stake={entry.stake_amount}"
            )
