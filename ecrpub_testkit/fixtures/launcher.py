"""Fixture launcher.

Turns a validated identifier and a fixture configuration into terraform
options, applies them, and returns a handle holding terraform's outputs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import ApplyError, ConfigurationError, TerraformCommandError
from ecrpub_testkit.models.fixture import FixtureConfiguration, FixtureHandle, FlatVars, StructuredObject
from ecrpub_testkit.terraform.options import TerraformOptions
from ecrpub_testkit.terraform.runner import TerraformRunner
from ecrpub_testkit.validation.identifier import validate_identifier

logger = logging.getLogger(__name__)

TAGS_VAR = "tags"


class FixtureLauncher:
    """Creates repository fixtures through terraform.

    Attributes:
        terraform_dir: Terraform configuration (root module or example) to apply
        config: Resolved configuration
        runner: Terraform runner
    """

    def __init__(
        self,
        terraform_dir: Union[str, Path],
        config: Config,
        runner: Optional[TerraformRunner] = None,
        env_vars: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize fixture launcher.

        Args:
            terraform_dir: Terraform configuration directory
            config: Resolved configuration
            runner: Terraform runner (default: built from config)
            env_vars: Extra environment variables for terraform
        """
        self.terraform_dir = Path(terraform_dir)
        self.config = config
        self.runner = runner or TerraformRunner(binary=config.terraform_binary)
        self.env_vars = dict(env_vars or {})

    def build_options(
        self,
        identifier: str,
        configuration: FixtureConfiguration,
        tags: Optional[Mapping[str, str]] = None,
    ) -> TerraformOptions:
        """Merge the identifier into the configuration and build terraform options.

        Tags, when given, are passed as the top-level ``tags`` map variable.

        Raises:
            ValidationError: If the identifier is invalid
            ConfigurationError: If configuration is not a known variant
        """
        validate_identifier(identifier)
        if not isinstance(configuration, (FlatVars, StructuredObject)):
            raise ConfigurationError(f"Unsupported fixture configuration: {type(configuration).__name__}")

        variables: dict[str, Any] = configuration.to_terraform_vars(identifier)
        if tags:
            variables[TAGS_VAR] = {str(key): str(value) for key, value in tags.items()}
        env_vars = {"AWS_DEFAULT_REGION": self.config.region, **self.env_vars}
        if self.config.aws_profile:
            env_vars.setdefault("AWS_PROFILE", self.config.aws_profile)

        return TerraformOptions(terraform_dir=self.terraform_dir, vars=variables, env_vars=env_vars)

    def handle_for(
        self,
        identifier: str,
        configuration: FixtureConfiguration,
        tags: Optional[Mapping[str, str]] = None,
    ) -> FixtureHandle:
        """Build an unapplied handle without touching AWS."""
        return FixtureHandle(
            identifier=identifier,
            region=self.config.region,
            options=self.build_options(identifier, configuration, tags=tags),
        )

    def launch(
        self,
        identifier: str,
        configuration: FixtureConfiguration,
        tags: Optional[Mapping[str, str]] = None,
    ) -> FixtureHandle:
        """Create the repository fixture.

        Args:
            identifier: Validated repository name
            configuration: FlatVars or StructuredObject
            tags: Resource tags (optional)

        Returns:
            Applied FixtureHandle with terraform outputs

        Raises:
            ApplyError: If terraform init/apply or output reading failed. The error
                carries the unapplied handle so cleanup can still run.
        """
        pending = self.handle_for(identifier, configuration, tags=tags)
        logger.info(f"Applying fixture {identifier} from {self.terraform_dir}")

        try:
            self.runner.init_and_apply(pending.options)
            outputs = self.runner.output_all(pending.options)
        except ApplyError as e:
            e.handle = pending
            raise
        except TerraformCommandError as e:
            raise ApplyError(
                str(e), handle=pending, command=e.command, return_code=e.return_code, stderr=e.stderr
            ) from e

        logger.info(f"Fixture {identifier} applied with outputs: {', '.join(sorted(outputs)) or '(none)'}")
        return pending.with_outputs(outputs)
