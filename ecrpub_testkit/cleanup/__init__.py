"""Fixture cleanup module.

Tears down repository fixtures with tiered fallbacks and records the result.

Classes:
    CleanupOrchestrator: Tiered cleanup state machine
    CleanupAuditStorage: Audit log storage and retrieval
    CleanupReporter: Rich rendering of cleanup records
"""

from __future__ import annotations

__all__ = [
    "CleanupOrchestrator",
    "CleanupAuditStorage",
    "CleanupReporter",
]
