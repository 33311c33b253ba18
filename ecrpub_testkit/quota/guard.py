"""Pre-flight repository quota guard.

Prevents test runs from exhausting the public repository limit of the
account. The check is advisory: parallel tests read the same remote counter
without locking and may pass it simultaneously, which is why the thresholds
sit well below the hard limit.
"""

from __future__ import annotations

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ecrpub_testkit.aws.ecr_public import EcrPublicAdmin
from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import AdminApiError, QuotaExceededError
from ecrpub_testkit.models.quota_snapshot import QuotaSnapshot, QuotaStatus

logger = logging.getLogger(__name__)


class QuotaGuard:
    """Repository quota guard.

    Attributes:
        config: Resolved configuration (skip signals, thresholds, region)
        admin: ECR Public administrative client
    """

    def __init__(self, config: Config, admin: Optional[EcrPublicAdmin] = None) -> None:
        """Initialize quota guard.

        Args:
            config: Resolved configuration
            admin: Administrative client (default: built from config)
        """
        self.config = config
        self.admin = admin or EcrPublicAdmin(aws_profile=config.aws_profile, default_region=config.region)

    def check_quota(self) -> QuotaSnapshot:
        """Check repository usage against the configured thresholds.

        Returns:
            Fresh QuotaSnapshot

        Raises:
            QuotaExceededError: If the count is at or above the abort threshold
        """
        warn_threshold = self.config.quota_warn_threshold
        error_threshold = self.config.quota_error_threshold

        if self.config.quota_check_skipped:
            logger.info("Skipping quota check (CI environment or AWS_SKIP_QUOTA_CHECK set)")
            return QuotaSnapshot(
                current_count=0,
                warn_threshold=warn_threshold,
                error_threshold=error_threshold,
                skipped=True,
                skip_reason="skip signal present",
            )

        logger.info("Checking ECR Public repository quota...")

        try:
            current_count = self.admin.count_repositories(region=self.config.region)
        except (AdminApiError, ClientError, BotoCoreError) as e:
            logger.warning(f"Could not check ECR Public quota: {e}")
            return QuotaSnapshot(
                current_count=0,
                warn_threshold=warn_threshold,
                error_threshold=error_threshold,
                skipped=True,
                skip_reason=f"quota query failed: {e}",
            )

        snapshot = QuotaSnapshot(
            current_count=current_count,
            warn_threshold=warn_threshold,
            error_threshold=error_threshold,
        )
        logger.info(f"Current ECR Public repositories: {current_count}")

        if snapshot.status == QuotaStatus.EXCEEDED:
            raise QuotaExceededError(
                f"ECR Public repository quota nearly exhausted ({current_count} repositories, "
                f"limit ~{self.config.quota_limit:,}). Please clean up existing repositories before "
                f"running tests. Use cleanup script: {self.config.cleanup_script}",
                current_count=current_count,
                error_threshold=error_threshold,
            )

        if snapshot.status == QuotaStatus.WARNING:
            logger.warning(
                f"High ECR Public repository usage ({current_count} repositories). "
                f"Consider running cleanup script: {self.config.cleanup_script}"
            )

        return snapshot
