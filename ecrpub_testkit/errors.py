"""Exception hierarchy for the ECR Public test kit.

Creation-path errors (validation, quota, apply) propagate to the calling test.
Teardown-path errors (destroy, fallback) are absorbed by the cleanup
orchestrator and converted into the next cleanup tier.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ecrpub_testkit.models.fixture import FixtureHandle


class TestkitError(Exception):
    """Base error for all test kit failures."""

    __test__ = False


class ValidationError(TestkitError, ValueError):
    """Raised when a repository name fails validation.

    Attributes:
        reason: Human-readable reason the name was rejected
        candidate: The rejected name
    """

    def __init__(self, reason: str, candidate: str = "") -> None:
        super().__init__(reason)
        self.reason = reason
        self.candidate = candidate


class ConfigurationError(TestkitError, ValueError):
    """Raised when a fixture configuration is malformed."""


class QuotaExceededError(TestkitError):
    """Raised when the repository count is at or above the abort threshold.

    Attributes:
        current_count: Number of repositories found in the region
        error_threshold: Threshold that was crossed
    """

    def __init__(self, message: str, current_count: int, error_threshold: int) -> None:
        super().__init__(message)
        self.current_count = current_count
        self.error_threshold = error_threshold


class SizeExceededError(TestkitError):
    """Raised when a test data file is larger than the allowed size."""

    def __init__(self, message: str, size: int, limit: int) -> None:
        super().__init__(message)
        self.size = size
        self.limit = limit


class TerraformCommandError(TestkitError):
    """Raised when a terraform command exits non-zero.

    Attributes:
        command: Command arguments (without the binary)
        return_code: Process exit status
        stderr: Captured standard error
    """

    def __init__(self, message: str, command: Optional[list[str]] = None, return_code: int = 1, stderr: str = "") -> None:
        super().__init__(message)
        self.command = command or []
        self.return_code = return_code
        self.stderr = stderr


class ApplyError(TerraformCommandError):
    """Raised when a fixture could not be applied.

    Carries the pending handle so cleanup can still run against any
    partially created resources.
    """

    def __init__(
        self,
        message: str,
        handle: Optional[FixtureHandle] = None,
        command: Optional[list[str]] = None,
        return_code: int = 1,
        stderr: str = "",
    ) -> None:
        super().__init__(message, command=command, return_code=return_code, stderr=stderr)
        self.handle = handle


class DestroyError(TerraformCommandError):
    """Raised when terraform destroy fails."""


class AdminApiError(TestkitError):
    """Raised when an ECR Public administrative call fails.

    Attributes:
        error_code: AWS error code, or "Unknown"
    """

    def __init__(self, message: str, error_code: str = "Unknown") -> None:
        super().__init__(message)
        self.error_code = error_code


class FallbackError(TestkitError):
    """Raised when a direct (non-terraform) cleanup attempt fails."""
