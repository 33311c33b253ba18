"""Terraform invocation options."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

# Transient errors worth retrying, keyed by regex. Values describe the cause.
DEFAULT_RETRYABLE_ERRORS: dict[str, str] = {
    r".*read: connection reset by peer.*": "Connection reset by the remote endpoint.",
    r".*unable to verify signature.*": "Failed to retrieve plugin due to transient network error.",
    r".*unable to verify checksum.*": "Failed to retrieve plugin due to transient network error.",
    r".*no provider exists with the given name.*": "Failed to retrieve plugin due to transient network error.",
    r".*registry service is unreachable.*": "Failed to retrieve plugin due to transient network error.",
    r".*Error installing provider.*": "Failed to retrieve plugin due to transient network error.",
    r".*Failed to query available provider packages.*": "Failed to retrieve plugin due to transient network error.",
    r".*timeout while waiting for plugin to start.*": "Failed to retrieve plugin due to transient network error.",
    r".*timed out waiting for server handshake.*": "Failed to retrieve plugin due to transient network error.",
    r".*could not query provider registry for.*": "Failed to retrieve plugin due to transient network error.",
    r".*RequestError: send request failed.*": "Failed to send request to AWS.",
    r".*TLS handshake timeout.*": "TLS handshake with the remote endpoint timed out.",
}


@dataclass(frozen=True)
class TerraformOptions:
    """Options for running terraform against one configuration directory.

    Attributes:
        terraform_dir: Directory holding the terraform configuration
        vars: Input variables, written to a temporary .tfvars.json file
        env_vars: Extra environment variables for the terraform process
        retryable_errors: Regex -> description of errors worth retrying
        max_retries: Maximum attempts for a retryable command
        time_between_retries: Seconds to wait between attempts
    """

    terraform_dir: Path
    vars: Mapping[str, Any] = field(default_factory=dict)
    env_vars: Mapping[str, str] = field(default_factory=dict)
    retryable_errors: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_RETRYABLE_ERRORS))
    max_retries: int = 3
    time_between_retries: float = 5.0
