"""Tests for fixture_scope and ensure_safe_test_execution."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from ecrpub_testkit.cleanup.orchestrator import CleanupOrchestrator
from ecrpub_testkit.errors import ApplyError, QuotaExceededError, ValidationError
from ecrpub_testkit.fixtures.launcher import FixtureLauncher
from ecrpub_testkit.fixtures.scope import ensure_safe_test_execution, fixture_scope
from ecrpub_testkit.models.cleanup_record import CleanupOutcome, CleanupRecord
from ecrpub_testkit.models.fixture import FixtureHandle, FlatVars
from ecrpub_testkit.quota.guard import QuotaGuard


def _record(outcome: CleanupOutcome = CleanupOutcome.TERRAFORM_SUCCEEDED) -> CleanupRecord:
    record = CleanupRecord(record_id="cln_1", identifier="r", region="us-east-1")
    record.outcome = outcome
    return record


class TestEnsureSafeTestExecution:
    """Test suite for ensure_safe_test_execution."""

    def test_validates_before_quota(self) -> None:
        """Test an invalid name never reaches the quota guard."""
        guard = Mock(spec=QuotaGuard)

        with pytest.raises(ValidationError):
            ensure_safe_test_execution("Bad", guard)

        guard.check_quota.assert_not_called()

    def test_runs_quota_check(self) -> None:
        """Test a valid name runs the quota check."""
        guard = Mock(spec=QuotaGuard)

        snapshot = ensure_safe_test_execution("good-name", guard)

        assert snapshot is guard.check_quota.return_value

    def test_without_guard(self) -> None:
        """Test no guard means no quota check."""
        assert ensure_safe_test_execution("good-name") is None


class TestFixtureScope:
    """Test suite for fixture_scope."""

    @pytest.fixture
    def pending(self) -> FixtureHandle:
        """Unapplied handle."""
        return FixtureHandle(identifier="r", region="us-east-1")

    @pytest.fixture
    def launcher(self, pending: FixtureHandle) -> Mock:
        """Launcher double."""
        launcher = Mock(spec=FixtureLauncher)
        launcher.handle_for.return_value = pending
        launcher.launch.return_value = pending.with_outputs({"repository_name": "r"})
        return launcher

    @pytest.fixture
    def orchestrator(self) -> Mock:
        """Orchestrator double."""
        orchestrator = Mock(spec=CleanupOrchestrator)
        orchestrator.cleanup.return_value = _record()
        return orchestrator

    def test_cleanup_after_success(self, launcher: Mock, orchestrator: Mock) -> None:
        """Test the applied handle is cleaned up after the block."""
        with fixture_scope("r", FlatVars(values={}), launcher, orchestrator) as handle:
            assert handle.applied is True
            orchestrator.cleanup.assert_not_called()

        orchestrator.cleanup.assert_called_once_with(handle)

    def test_cleanup_after_test_failure(self, launcher: Mock, orchestrator: Mock) -> None:
        """Test cleanup runs when the test body raises."""
        with pytest.raises(AssertionError):
            with fixture_scope("r", FlatVars(values={}), launcher, orchestrator):
                raise AssertionError("test failed")

        orchestrator.cleanup.assert_called_once()

    def test_cleanup_after_apply_failure(self, launcher: Mock, orchestrator: Mock, pending: FixtureHandle) -> None:
        """Test a failed apply still cleans up the pending handle."""
        launcher.launch.side_effect = ApplyError("apply failed", handle=pending)

        with pytest.raises(ApplyError):
            with fixture_scope("r", FlatVars(values={}), launcher, orchestrator):
                pytest.fail("body must not run")

        orchestrator.cleanup.assert_called_once_with(pending)

    def test_no_cleanup_when_quota_exceeded(self, launcher: Mock, orchestrator: Mock) -> None:
        """Test nothing is created or cleaned when the guard aborts."""
        guard = Mock(spec=QuotaGuard)
        guard.check_quota.side_effect = QuotaExceededError("quota", current_count=9000, error_threshold=8500)

        with pytest.raises(QuotaExceededError):
            with fixture_scope("r", FlatVars(values={}), launcher, orchestrator, guard=guard):
                pytest.fail("body must not run")

        launcher.launch.assert_not_called()
        orchestrator.cleanup.assert_not_called()

    def test_manual_required_does_not_raise(self, launcher: Mock, orchestrator: Mock) -> None:
        """Test a manual cleanup outcome is logged, not raised."""
        orchestrator.cleanup.return_value = _record(CleanupOutcome.MANUAL_REQUIRED)

        with fixture_scope("r", FlatVars(values={}), launcher, orchestrator):
            pass

        orchestrator.cleanup.assert_called_once()
