"""Manual remediation report model."""

from __future__ import annotations

from dataclasses import dataclass

BANNER = "=== MANUAL CLEANUP REQUIRED ==="
FOOTER = "=" * 30


@dataclass(frozen=True)
class RemediationReport:
    """Instructions for removing a repository by hand.

    Emitted when every automated cleanup tier failed. The report is logged,
    never raised.

    Attributes:
        identifier: Repository name
        region: Region the repository lives in
        cleanup_script: Out-of-band cleanup script path
    """

    identifier: str
    region: str
    cleanup_script: str

    @property
    def delete_command(self) -> str:
        return (
            f"aws ecr-public delete-repository --region {self.region} "
            f"--repository-name {self.identifier} --force"
        )

    @property
    def describe_command(self) -> str:
        return (
            f"aws ecr-public describe-repositories --repository-names {self.identifier} "
            f"--region {self.region}"
        )

    @property
    def console_url(self) -> str:
        return f"https://console.aws.amazon.com/ecr/repositories?region={self.region}"

    def lines(self) -> list[str]:
        """Render the report as log lines, banner to footer."""
        return [
            BANNER,
            f"Repository: {self.identifier}",
            f"Region: {self.region}",
            "AWS CLI Command:",
            f"  {self.delete_command}",
            "Alternative cleanup methods:",
            f"  1. Use cleanup script: {self.cleanup_script}",
            f"  2. AWS Console: {self.console_url}",
            f"  3. Check if repository exists: {self.describe_command}",
            FOOTER,
        ]

    def to_dict(self) -> dict[str, str]:
        return {
            "identifier": self.identifier,
            "region": self.region,
            "delete_command": self.delete_command,
            "describe_command": self.describe_command,
            "console_url": self.console_url,
            "cleanup_script": self.cleanup_script,
        }
