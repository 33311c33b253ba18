"""Integration tests for the fixture lifecycle.

Runs the real launcher, runner, orchestrator and audit storage together.
Only the terraform subprocess and the ECR Public API are replaced.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from ecrpub_testkit.aws.ecr_public import EcrPublicAdmin
from ecrpub_testkit.cleanup.audit import CleanupAuditStorage
from ecrpub_testkit.cleanup.orchestrator import CleanupOrchestrator
from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import ApplyError
from ecrpub_testkit.fixtures.catalog import generate_test_tags, minimal_catalog_data
from ecrpub_testkit.fixtures.launcher import FixtureLauncher
from ecrpub_testkit.fixtures.scope import fixture_scope
from ecrpub_testkit.models.cleanup_record import CleanupOutcome
from ecrpub_testkit.quota.guard import QuotaGuard
from ecrpub_testkit.terraform.runner import TerraformRunner


class FakeTerraform:
    """Stands in for the terraform binary, keyed by subcommand."""

    def __init__(self, failing: tuple[str, ...] = ()) -> None:
        self.failing = failing
        self.commands: list[list[str]] = []
        self.applied_vars: dict = {}

    def __call__(self, cmd, **kwargs) -> subprocess.CompletedProcess:
        self.commands.append(cmd)
        subcommand = cmd[1]
        if subcommand in self.failing:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr=f"Error: {subcommand} failed")
        if subcommand == "apply":
            var_file = next(arg for arg in cmd if arg.startswith("-var-file="))
            self.applied_vars = json.loads(Path(var_file.split("=", 1)[1]).read_text())
        if subcommand == "output":
            name = self.applied_vars.get("repository_name", "")
            outputs = {
                "repository_name": {"value": name},
                "repository_uri": {"value": f"public.ecr.aws/abc123/{name}"},
            }
            return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(outputs), stderr="")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def subcommands(self) -> list[str]:
        return [cmd[1] for cmd in self.commands]


class TestFixtureLifecycle:
    """End-to-end fixture create and cleanup."""

    @pytest.fixture
    def config(self, tmp_path: Path) -> Config:
        """Config with a fast retry and audit logs under tmp_path."""
        return Config(retry_delay_seconds=0, audit_dir=str(tmp_path / "audit"))

    @pytest.fixture
    def admin(self) -> Mock:
        """ECR Public API double."""
        admin = Mock(spec=EcrPublicAdmin)
        admin.count_repositories.return_value = 42
        admin.repository_exists.return_value = True
        return admin

    def _build(self, config: Config, admin: Mock, tmp_path: Path):
        runner = TerraformRunner()
        launcher = FixtureLauncher(tmp_path, config, runner=runner)
        orchestrator = CleanupOrchestrator(
            config,
            destroyer=runner,
            admin=admin,
            audit_storage=CleanupAuditStorage(config.audit_dir),
        )
        return launcher, orchestrator, QuotaGuard(config, admin=admin)

    def test_create_use_destroy(self, config: Config, admin: Mock, tmp_path: Path, unique_name: str) -> None:
        """Test the happy path applies, exposes outputs and destroys."""
        fake = FakeTerraform()
        launcher, orchestrator, guard = self._build(config, admin, tmp_path)
        tags = generate_test_tags("TestCreateUseDestroy", unique_name)

        with patch("ecrpub_testkit.terraform.runner.subprocess.run", side_effect=fake):
            with fixture_scope(
                unique_name, minimal_catalog_data(unique_name), launcher, orchestrator, guard=guard, tags=tags
            ) as handle:
                assert handle.output("repository_name") == unique_name
                assert handle.output("repository_uri").endswith(unique_name)
                assert fake.applied_vars["catalog_data"]["operating_systems"] == ["Linux"]
                assert fake.applied_vars["tags"]["TestRun"] == unique_name

        assert fake.subcommands() == ["init", "apply", "output", "destroy"]
        admin.count_repositories.assert_called_once()
        admin.delete_repository.assert_not_called()

        records = CleanupAuditStorage(config.audit_dir).query_records()
        assert [r["cleanup"]["outcome"] for r in records] == ["terraform_succeeded"]

    def test_failed_apply_still_cleans_up(self, config: Config, admin: Mock, tmp_path: Path, unique_name: str) -> None:
        """Test a partial apply is torn down through the API fallback."""
        fake = FakeTerraform(failing=("apply", "destroy"))
        launcher, orchestrator, guard = self._build(config, admin, tmp_path)

        with patch("ecrpub_testkit.terraform.runner.subprocess.run", side_effect=fake):
            with pytest.raises(ApplyError):
                with fixture_scope(unique_name, minimal_catalog_data(unique_name), launcher, orchestrator, guard=guard):
                    pytest.fail("body must not run")

        assert fake.subcommands() == ["init", "apply", "destroy"]
        admin.delete_repository.assert_called_once_with(unique_name, region="us-east-1", force=True)

        records = CleanupAuditStorage(config.audit_dir).query_records(outcome=CleanupOutcome.FALLBACK_SUCCEEDED)
        assert len(records) == 1
        assert records[0]["cleanup"]["identifier"] == unique_name

    def test_test_failure_with_stuck_repository(
        self, config: Config, admin: Mock, tmp_path: Path, unique_name: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a failing test body with every cleanup tier failing."""
        fake = FakeTerraform(failing=("destroy",))
        admin.delete_repository.side_effect = RuntimeError("service unavailable")
        launcher, orchestrator, guard = self._build(config, admin, tmp_path)

        with patch("ecrpub_testkit.terraform.runner.subprocess.run", side_effect=fake):
            with pytest.raises(AssertionError, match="assertion in test"):
                with fixture_scope(unique_name, minimal_catalog_data(unique_name), launcher, orchestrator, guard=guard):
                    raise AssertionError("assertion in test")

        assert admin.delete_repository.call_count == 2
        assert "MANUAL CLEANUP REQUIRED" in caplog.text
        assert f"--repository-name {unique_name} --force" in caplog.text

        records = CleanupAuditStorage(config.audit_dir).query_records(outcome=CleanupOutcome.MANUAL_REQUIRED)
        assert len(records) == 1
