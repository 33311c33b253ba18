"""Test kit configuration.

Configuration is resolved once, from an optional YAML file overlaid by the
process environment, and then passed explicitly to the components that need
it. Nothing else in the package reads environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ecrpub_testkit.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ECR Public repositories can only be created in us-east-1.
DEFAULT_REGION = "us-east-1"

# Documented default limit of public repositories per region.
DEFAULT_QUOTA_LIMIT = 10000

DEFAULT_CLEANUP_SCRIPT = "./test/cleanup-orphaned-resources.sh"

CONFIG_ENV_VAR = "ECRPUB_TESTKIT_CONFIG"

_BOOL_FIELDS = ("ci_mode", "skip_quota_check", "direct_cleanup_in_ci")


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "") != ""


@dataclass
class Config:
    """Resolved test kit settings.

    Attributes:
        region: Region that hosts the public repositories
        aws_profile: AWS profile name (optional)
        ci_mode: Running under CI (the CI variable is set)
        skip_quota_check: Explicit quota check override (AWS_SKIP_QUOTA_CHECK)
        quota_limit: Provider hard limit of repositories per region
        warn_ratio: Fraction of quota_limit at which a warning is logged
        error_ratio: Fraction of quota_limit at which tests abort
        warn_threshold: Absolute warning threshold (overrides warn_ratio)
        error_threshold: Absolute abort threshold (overrides error_ratio)
        retry_max_attempts: Direct cleanup attempts (first try plus retries)
        retry_delay_seconds: Wait between direct cleanup attempts
        cleanup_script: Out-of-band remediation script named in reports
        direct_cleanup_in_ci: Allow direct API cleanup when ci_mode is set
        terraform_binary: Terraform executable name or path
        testdata_root: Directory holding test data documents
        audit_dir: Directory for cleanup audit logs (None disables auditing)
        log_level: Default log level
    """

    region: str = DEFAULT_REGION
    aws_profile: Optional[str] = None
    ci_mode: bool = False
    skip_quota_check: bool = False
    quota_limit: int = DEFAULT_QUOTA_LIMIT
    warn_ratio: float = 0.70
    error_ratio: float = 0.85
    warn_threshold: Optional[int] = None
    error_threshold: Optional[int] = None
    retry_max_attempts: int = 2
    retry_delay_seconds: float = 10.0
    cleanup_script: str = DEFAULT_CLEANUP_SCRIPT
    direct_cleanup_in_ci: bool = False
    terraform_binary: str = "terraform"
    testdata_root: str = "testdata"
    audit_dir: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check that quota settings are consistent.

        Raises:
            ConfigurationError: If ratios are outside (0, 1] or the warning
                threshold is above the abort threshold
        """
        for name in ("warn_ratio", "error_ratio"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ConfigurationError(f"{name} must be in (0, 1], got {value}")
        if self.quota_warn_threshold > self.quota_error_threshold:
            raise ConfigurationError(
                f"Quota warning threshold ({self.quota_warn_threshold}) exceeds the abort threshold "
                f"({self.quota_error_threshold})"
            )

    @property
    def quota_warn_threshold(self) -> int:
        if self.warn_threshold is not None:
            return self.warn_threshold
        return int(self.quota_limit * self.warn_ratio)

    @property
    def quota_error_threshold(self) -> int:
        if self.error_threshold is not None:
            return self.error_threshold
        return int(self.quota_limit * self.error_ratio)

    @property
    def quota_check_skipped(self) -> bool:
        """True when either skip signal is present."""
        return self.ci_mode or self.skip_quota_check

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """Build a config from a mapping, rejecting unknown keys.

        Args:
            data: Mapping of field names to values

        Returns:
            Config instance

        Raises:
            ConfigurationError: If the mapping contains unknown keys, a non-boolean
                flag or inconsistent quota settings
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        for name in _BOOL_FIELDS:
            if name in data and not isinstance(data[name], bool):
                raise ConfigurationError(f"{name} must be true or false, got {data[name]!r}")
        return cls(**dict(data))

    @classmethod
    def load(cls, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Config:
        """Load configuration from YAML and environment signals.

        The YAML file is optional. Environment signals (CI, AWS_SKIP_QUOTA_CHECK,
        AWS_PROFILE) are presence checks and always win over file values.

        Args:
            config_path: Path to a YAML config file (default: $ECRPUB_TESTKIT_CONFIG
                or ~/.ecrpub-testkit/config.yaml)
            environ: Environment mapping (default: os.environ)

        Returns:
            Config instance
        """
        env = os.environ if environ is None else environ

        if config_path is None:
            config_path = env.get(CONFIG_ENV_VAR) or str(Path.home() / ".ecrpub-testkit" / "config.yaml")

        data: dict[str, Any] = {}
        path = Path(config_path)
        if path.is_file():
            with open(path, "r") as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(f"Config file {path} must contain a mapping")
            data.update(loaded)
            logger.debug(f"Loaded configuration from {path}")

        config = cls.from_dict(data)

        if _flag(env, "CI"):
            config.ci_mode = True
        if _flag(env, "AWS_SKIP_QUOTA_CHECK"):
            config.skip_quota_check = True
        if env.get("AWS_PROFILE"):
            config.aws_profile = env["AWS_PROFILE"]

        return config
