"""Fixture creation and scoped lifetime.

Classes:
    FixtureLauncher: Applies a fixture configuration through terraform

Functions:
    fixture_scope: Context manager pairing creation with cleanup
    ensure_safe_test_execution: Validation then quota check
"""

from __future__ import annotations

__all__ = [
    "FixtureLauncher",
    "fixture_scope",
    "ensure_safe_test_execution",
]
