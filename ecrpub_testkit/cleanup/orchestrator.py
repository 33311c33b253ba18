"""Tiered cleanup orchestrator.

Guarantees a best-effort teardown for every fixture handle:

    1. terraform destroy
    2. direct delete through the ECR Public API (absent counts as deleted)
    3. one more direct delete after a fixed wait
    4. manual remediation report, logged at ERROR

Teardown errors never propagate out of ``cleanup``; each failure moves the
state machine to the next tier.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol

from ecrpub_testkit.aws.ecr_public import EcrPublicAdmin
from ecrpub_testkit.cleanup.audit import CleanupAuditStorage
from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import AdminApiError, FallbackError
from ecrpub_testkit.models.cleanup_record import (
    CleanupAttempt,
    CleanupOutcome,
    CleanupRecord,
    CleanupState,
    CleanupTier,
)
from ecrpub_testkit.models.fixture import FixtureHandle
from ecrpub_testkit.models.remediation_report import RemediationReport
from ecrpub_testkit.terraform.options import TerraformOptions
from ecrpub_testkit.terraform.runner import TerraformRunner
from ecrpub_testkit.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


class Destroyer(Protocol):
    def destroy(self, options: TerraformOptions) -> str: ...


class CleanupOrchestrator:
    """Cleanup orchestrator for repository fixtures.

    Attributes:
        config: Resolved configuration
        destroyer: Declarative destroy collaborator (terraform)
        admin: ECR Public administrative client for the direct tiers
        retry_policy: Bounds the direct-delete attempts (first try plus retries)
        audit_storage: Where cleanup records are written (optional)
    """

    def __init__(
        self,
        config: Config,
        destroyer: Optional[Destroyer] = None,
        admin: Optional[EcrPublicAdmin] = None,
        retry_policy: Optional[RetryPolicy] = None,
        audit_storage: Optional[CleanupAuditStorage] = None,
    ) -> None:
        """Initialize cleanup orchestrator.

        Args:
            config: Resolved configuration
            destroyer: Terraform destroy collaborator (default: TerraformRunner)
            admin: Administrative client (default: built from config)
            retry_policy: Direct-delete retry policy (default: from config)
            audit_storage: Audit storage (optional)
        """
        self.config = config
        self.destroyer = destroyer or TerraformRunner(binary=config.terraform_binary)
        self.admin = admin or EcrPublicAdmin(aws_profile=config.aws_profile, default_region=config.region)
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=config.retry_max_attempts,
            delay_seconds=config.retry_delay_seconds,
        )
        self.audit_storage = audit_storage

    def cleanup(self, handle: FixtureHandle) -> CleanupRecord:
        """Tear down a fixture, falling back tier by tier.

        Never raises for teardown failures. Interrupts (KeyboardInterrupt,
        SystemExit) are not caught and may leave the repository behind.

        Args:
            handle: Fixture handle, applied or not

        Returns:
            Finished CleanupRecord
        """
        record = CleanupRecord(
            record_id=f"cln_{uuid.uuid4()}",
            identifier=handle.identifier,
            region=handle.region,
        )
        logger.info(f"Starting cleanup for repository: {handle.identifier}")

        try:
            self._run(handle, record)
        except Exception as e:
            logger.error(f"Unexpected error while cleaning up {handle.identifier}: {e}")
            report = self._build_report(handle)
            self._emit_report(report)
            record.abandon(report)

        if self.audit_storage is not None:
            try:
                self.audit_storage.log_record(record)
            except Exception as e:
                logger.warning(f"Could not write cleanup audit log for {handle.identifier}: {e}")

        return record

    def _run(self, handle: FixtureHandle, record: CleanupRecord) -> None:
        record.transition(CleanupState.DESTROY_ATTEMPTED)
        if self._attempt_destroy(handle, record):
            record.finish(CleanupOutcome.TERRAFORM_SUCCEEDED)
            return

        logger.info(f"Attempting direct AWS cleanup as fallback for repository: {handle.identifier}")
        for attempt in range(1, self.retry_policy.max_attempts + 1):
            if attempt == 1:
                tier = CleanupTier.DIRECT_DELETE
                record.transition(CleanupState.FALLBACK_ATTEMPTED)
            else:
                tier = CleanupTier.DIRECT_DELETE_RETRY
                self.retry_policy.wait_before(attempt)
                record.transition(CleanupState.RETRY_ATTEMPTED)

            if self._attempt_direct_cleanup(handle, record, tier):
                if attempt == 1:
                    logger.info(f"Direct AWS cleanup succeeded for repository: {handle.identifier}")
                    record.finish(CleanupOutcome.FALLBACK_SUCCEEDED)
                else:
                    logger.info(f"Final cleanup attempt succeeded for repository: {handle.identifier}")
                    record.finish(CleanupOutcome.RETRY_SUCCEEDED)
                return

        report = self._build_report(handle)
        self._emit_report(report)
        record.finish(CleanupOutcome.MANUAL_REQUIRED, report)

    def _attempt_destroy(self, handle: FixtureHandle, record: CleanupRecord) -> bool:
        if handle.options is None:
            message = "no terraform options for this fixture"
            logger.warning(f"Skipping terraform destroy for {handle.identifier}: {message}")
            record.add_attempt(CleanupAttempt(tier=CleanupTier.TERRAFORM_DESTROY, succeeded=False, error_message=message))
            return False

        logger.info("Attempting terraform destroy...")
        try:
            self.destroyer.destroy(handle.options)
        except Exception as e:
            logger.warning(f"Terraform destroy failed: {e}")
            logger.warning(f"Repository that may need manual cleanup: {handle.identifier}")
            record.add_attempt(CleanupAttempt(tier=CleanupTier.TERRAFORM_DESTROY, succeeded=False, error_message=str(e)))
            return False

        logger.info(f"Terraform destroy succeeded for repository: {handle.identifier}")
        record.add_attempt(CleanupAttempt(tier=CleanupTier.TERRAFORM_DESTROY, succeeded=True))
        return True

    def _attempt_direct_cleanup(self, handle: FixtureHandle, record: CleanupRecord, tier: CleanupTier) -> bool:
        try:
            already_absent = self._direct_cleanup(handle)
        except Exception as e:
            if tier == CleanupTier.DIRECT_DELETE:
                logger.warning(f"Direct AWS cleanup also failed: {e}")
            else:
                logger.warning(f"Final cleanup attempt also failed: {e}")
            record.add_attempt(CleanupAttempt(tier=tier, succeeded=False, error_message=str(e)))
            return False

        record.add_attempt(CleanupAttempt(tier=tier, succeeded=True, already_absent=already_absent))
        return True

    def _direct_cleanup(self, handle: FixtureHandle) -> bool:
        """Delete the repository through the API.

        Returns:
            True if the repository was already absent

        Raises:
            FallbackError: If the delete was skipped or failed
            AdminApiError: If the existence check failed
        """
        if self.config.ci_mode and not self.config.direct_cleanup_in_ci:
            logger.info("Skipping direct AWS cleanup in CI environment")
            raise FallbackError("skipped in CI environment")

        logger.info(f"Attempting direct AWS cleanup for: {handle.identifier}")
        if not self.admin.repository_exists(handle.identifier, region=handle.region):
            logger.info(f"Repository {handle.identifier} does not exist, no cleanup needed")
            return True

        try:
            self.admin.delete_repository(handle.identifier, region=handle.region, force=True)
        except AdminApiError as e:
            raise FallbackError(f"failed to delete repository {handle.identifier}: {e}") from e

        logger.info(f"Successfully deleted repository via AWS API: {handle.identifier}")
        return False

    def _build_report(self, handle: FixtureHandle) -> RemediationReport:
        return RemediationReport(
            identifier=handle.identifier,
            region=handle.region,
            cleanup_script=self.config.cleanup_script,
        )

    def _emit_report(self, report: RemediationReport) -> None:
        for line in report.lines():
            logger.error(line)
