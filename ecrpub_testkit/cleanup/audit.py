"""Audit storage for cleanup records.

Stores one YAML file per cleanup so operators can find repositories that
needed manual remediation and reconcile them out-of-band.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from ecrpub_testkit.models.cleanup_record import CleanupOutcome, CleanupRecord


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() + "Z" if value else None


class CleanupAuditStorage:
    """Cleanup audit log storage and retrieval.

    Storage structure:
        <storage_dir>/
            2026/
                10/
                    cleanup-cln_123.yaml
                    cleanup-cln_456.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.ecrpub-testkit/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".ecrpub-testkit" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_record(self, record: CleanupRecord) -> Path:
        """Write a cleanup record.

        Overwrites an existing log with the same record ID.

        Args:
            record: Finished cleanup record

        Returns:
            Path of the written file
        """
        month_dir = self.storage_dir / str(record.started_at.year) / f"{record.started_at.month:02d}"
        month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "fixture_cleanup",
                "created_at": _iso(datetime.utcnow()),
            },
            "cleanup": {
                "record_id": record.record_id,
                "identifier": record.identifier,
                "region": record.region,
                "started_at": _iso(record.started_at),
                "completed_at": _iso(record.completed_at),
                "duration_seconds": record.duration_seconds,
                "state": record.state.value,
                "history": [state.value for state in record.history],
                "outcome": record.outcome.value if record.outcome else None,
            },
            "attempts": [
                {
                    "tier": attempt.tier.value,
                    "succeeded": attempt.succeeded,
                    "already_absent": attempt.already_absent,
                    "error_message": attempt.error_message,
                    "timestamp": _iso(attempt.timestamp),
                }
                for attempt in record.attempts
            ],
            "remediation": record.report.to_dict() if record.report else None,
        }

        audit_file = month_dir / f"cleanup-{record.record_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)
        return audit_file

    def get_record(self, record_id: str) -> Optional[dict]:
        """Retrieve a cleanup log by record ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/cleanup-{record_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)
        return None

    def query_records(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        outcome: Optional[CleanupOutcome] = None,
    ) -> list[dict]:
        """Query cleanup logs by date range and outcome.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all
            outcome: Only records with this outcome, None for all

        Returns:
            Matching audit logs, oldest first
        """
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/cleanup-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            started_at = datetime.fromisoformat(audit_data["cleanup"]["started_at"].rstrip("Z"))

            if since and started_at < since:
                continue
            if until and started_at > until:
                continue
            if outcome and audit_data["cleanup"]["outcome"] != outcome.value:
                continue

            results.append(audit_data)

        results.sort(key=lambda data: data["cleanup"]["started_at"])
        return results
