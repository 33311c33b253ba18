"""Quota snapshot model.

Point-in-time view of repository usage against the configured thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class QuotaStatus(Enum):
    """Quota check decision."""

    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class QuotaSnapshot:
    """Quota snapshot entity.

    Produced fresh for every check and never cached. Concurrent tests read the
    same remote counter without coordination, so a snapshot is advisory only.

    Attributes:
        current_count: Repositories found in the region (0 when skipped)
        warn_threshold: Count at which a warning is logged
        error_threshold: Count at which the test aborts
        skipped: True when no count was taken (skip signal or query failure)
        skip_reason: Why the check was skipped (optional)
        checked_at: When the snapshot was taken (UTC)
    """

    current_count: int
    warn_threshold: int
    error_threshold: int
    skipped: bool = False
    skip_reason: Optional[str] = None
    checked_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        if self.current_count < 0:
            raise ValueError("current_count cannot be negative")
        if self.warn_threshold > self.error_threshold:
            raise ValueError("warn_threshold must not exceed error_threshold")

    @property
    def status(self) -> QuotaStatus:
        if self.skipped:
            return QuotaStatus.SKIPPED
        if self.current_count >= self.error_threshold:
            return QuotaStatus.EXCEEDED
        if self.current_count >= self.warn_threshold:
            return QuotaStatus.WARNING
        return QuotaStatus.OK

    @property
    def headroom(self) -> int:
        """Repositories left before the abort threshold."""
        return max(self.error_threshold - self.current_count, 0)
