"""Scoped fixture lifetime.

Pairs every fixture creation with exactly one cleanup, whatever happens
inside the test body.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from ecrpub_testkit.cleanup.orchestrator import CleanupOrchestrator
from ecrpub_testkit.errors import ApplyError
from ecrpub_testkit.fixtures.launcher import FixtureLauncher
from ecrpub_testkit.models.fixture import FixtureConfiguration, FixtureHandle
from ecrpub_testkit.models.quota_snapshot import QuotaSnapshot
from ecrpub_testkit.quota.guard import QuotaGuard
from ecrpub_testkit.validation.identifier import validate_identifier

logger = logging.getLogger(__name__)


def ensure_safe_test_execution(identifier: str, guard: Optional[QuotaGuard] = None) -> Optional[QuotaSnapshot]:
    """Validate the identifier, then check quota headroom.

    Args:
        identifier: Repository name about to be created
        guard: Quota guard (optional; no quota check when omitted)

    Returns:
        Quota snapshot, or None when no guard was given

    Raises:
        ValidationError: If the identifier is invalid (quota is not queried)
        QuotaExceededError: If the account is at or above the abort threshold
    """
    validate_identifier(identifier)
    if guard is None:
        return None
    return guard.check_quota()


@contextmanager
def fixture_scope(
    identifier: str,
    configuration: FixtureConfiguration,
    launcher: FixtureLauncher,
    orchestrator: CleanupOrchestrator,
    guard: Optional[QuotaGuard] = None,
    tags: Optional[Mapping[str, str]] = None,
) -> Iterator[FixtureHandle]:
    """Create a fixture for the duration of a ``with`` block.

    Validation and quota errors are raised before anything is created and no
    cleanup runs for them. Once creation starts, cleanup runs exactly once on
    every exit path, including a failed apply, since a partial apply may
    still have created the repository.

    Example:
        with fixture_scope(name, minimal_catalog_data(name), launcher, orchestrator) as handle:
            assert handle.output("repository_name") == name
    """
    ensure_safe_test_execution(identifier, guard)
    pending = launcher.handle_for(identifier, configuration, tags=tags)

    handle: Optional[FixtureHandle] = None
    try:
        try:
            handle = launcher.launch(identifier, configuration, tags=tags)
        except ApplyError as e:
            if e.handle is not None:
                handle = e.handle
            logger.error(f"Fixture {identifier} failed to apply: {e}")
            raise
        yield handle
    finally:
        record = orchestrator.cleanup(handle or pending)
        if record.manual_required:
            logger.error(f"Fixture {identifier} was not cleaned up; see the remediation report above")
