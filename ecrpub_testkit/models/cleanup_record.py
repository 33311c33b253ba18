"""Cleanup record model.

Result of tearing down one fixture, with every tier attempted on the way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ecrpub_testkit.models.remediation_report import RemediationReport


class CleanupState(Enum):
    """Cleanup state machine states."""

    CREATED = "created"
    DESTROY_ATTEMPTED = "destroy_attempted"
    FALLBACK_ATTEMPTED = "fallback_attempted"
    RETRY_ATTEMPTED = "retry_attempted"
    DONE = "done"


class CleanupOutcome(Enum):
    """Terminal cleanup outcome."""

    TERRAFORM_SUCCEEDED = "terraform_succeeded"
    FALLBACK_SUCCEEDED = "fallback_succeeded"
    RETRY_SUCCEEDED = "retry_succeeded"
    MANUAL_REQUIRED = "manual_required"


class CleanupTier(Enum):
    """Mechanism used by a single cleanup attempt."""

    TERRAFORM_DESTROY = "terraform_destroy"
    DIRECT_DELETE = "direct_delete"
    DIRECT_DELETE_RETRY = "direct_delete_retry"


# Allowed transitions. DONE is terminal.
TRANSITIONS: dict[CleanupState, tuple[CleanupState, ...]] = {
    CleanupState.CREATED: (CleanupState.DESTROY_ATTEMPTED,),
    CleanupState.DESTROY_ATTEMPTED: (CleanupState.DONE, CleanupState.FALLBACK_ATTEMPTED),
    CleanupState.FALLBACK_ATTEMPTED: (CleanupState.DONE, CleanupState.RETRY_ATTEMPTED),
    CleanupState.RETRY_ATTEMPTED: (CleanupState.DONE, CleanupState.RETRY_ATTEMPTED),
    CleanupState.DONE: (),
}


@dataclass(frozen=True)
class CleanupAttempt:
    """A single cleanup attempt.

    Attributes:
        tier: Mechanism used
        succeeded: Whether the attempt removed (or confirmed absence of) the repository
        error_message: Error text if the attempt failed (optional)
        already_absent: Repository did not exist when checked
        timestamp: When the attempt finished (UTC)
    """

    tier: CleanupTier
    succeeded: bool
    error_message: Optional[str] = None
    already_absent: bool = False
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class CleanupRecord:
    """Cleanup record entity.

    State transitions:
        created → destroy_attempted → done (terraform_succeeded)
        created → destroy_attempted → fallback_attempted → done (fallback_succeeded)
        ... → fallback_attempted → retry_attempted → done (retry_succeeded | manual_required)

    Attributes:
        record_id: Unique identifier for this record
        identifier: Repository name
        region: Region
        started_at: When cleanup began (UTC)
        state: Current state
        history: States visited, in order
        attempts: Attempts made, in order
        outcome: Terminal outcome once state is DONE
        report: Manual remediation report when outcome is MANUAL_REQUIRED
        completed_at: When cleanup reached DONE (optional)
    """

    record_id: str
    identifier: str
    region: str
    started_at: datetime = field(default_factory=datetime.utcnow)
    state: CleanupState = CleanupState.CREATED
    history: list[CleanupState] = field(default_factory=lambda: [CleanupState.CREATED])
    attempts: list[CleanupAttempt] = field(default_factory=list)
    outcome: Optional[CleanupOutcome] = None
    report: Optional[RemediationReport] = None
    completed_at: Optional[datetime] = None

    def transition(self, new_state: CleanupState) -> None:
        """Move to a new state.

        Raises:
            ValueError: If the transition is not allowed
        """
        if new_state not in TRANSITIONS[self.state]:
            raise ValueError(f"Invalid cleanup transition: {self.state.value} → {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def add_attempt(self, attempt: CleanupAttempt) -> None:
        self.attempts.append(attempt)

    def finish(self, outcome: CleanupOutcome, report: Optional[RemediationReport] = None) -> None:
        """Reach the terminal state with an outcome.

        Raises:
            ValueError: If the record is already finished or the report does not match the outcome
        """
        if self.outcome is not None:
            raise ValueError(f"Cleanup for {self.identifier} already finished as {self.outcome.value}")
        if (outcome == CleanupOutcome.MANUAL_REQUIRED) != (report is not None):
            raise ValueError("A remediation report is required exactly when manual cleanup is required")
        self.transition(CleanupState.DONE)
        self.outcome = outcome
        self.report = report
        self.completed_at = datetime.utcnow()

    @property
    def is_done(self) -> bool:
        return self.state == CleanupState.DONE

    @property
    def manual_required(self) -> bool:
        return self.outcome == CleanupOutcome.MANUAL_REQUIRED

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def failed_attempts(self) -> list[CleanupAttempt]:
        return [a for a in self.attempts if not a.succeeded]

    def abandon(self, report: RemediationReport) -> None:
        """Terminate as MANUAL_REQUIRED from any unfinished state.

        Used when the orchestrator itself fails unexpectedly mid-cleanup.
        """
        if self.is_done:
            return
        self.state = CleanupState.DONE
        self.history.append(CleanupState.DONE)
        self.outcome = CleanupOutcome.MANUAL_REQUIRED
        self.report = report
        self.completed_at = datetime.utcnow()
