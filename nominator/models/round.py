"""
Round and trigger models.

A round is one execution of the gather/score/select/submit pipeline. It is
held in memory only and discarded once it reaches a terminal state.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nominator.models.validator import NominationEntry


class TriggerKind(str, Enum):
    TIMER = "timer"
    ERA = "era"


class RoundState(str, Enum):
    IDLE = "idle"
    GATHERING = "gathering"
    SCORING = "scoring"
    SELECTING = "selecting"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RoundState.DONE, RoundState.FAILED)


class Trigger(BaseModel):
    """A request to run a round, keyed by tick count or era index."""

    model_config = ConfigDict(frozen=True)

    kind: TriggerKind
    key: int = Field(..., ge=0, description="Tick count or era index")

    def __str__(self) -> str:
        return f"{self.kind.value}#{self.key}"


class Round(BaseModel):
    """In-memory state of a single round."""

    trigger: Trigger
    state: RoundState = RoundState.IDLE
    era: Optional[int] = None
    validator_count: int = 0
    nominations: List[NominationEntry] = Field(default_factory=list)
    extrinsic_hash: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def advance(self, state: RoundState) -> None:
        if self.state.is_terminal:
            raise ValueError(f"Round {self.trigger} already {self.state.value}")
        self.state = state
        if state.is_terminal:
            self.finished_at = datetime.now(timezone.utc)

    def fail(self, reason: str) -> None:
        self.error = reason
        self.advance(RoundState.FAILED)
