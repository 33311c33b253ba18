"""Terraform command runner.

Runs the terraform binary as a subprocess (never through a shell) for the
declarative apply/destroy side of fixture lifecycles. Transient failures that
match the configured retryable error patterns are retried with a bounded
policy; everything else raises immediately.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
import tempfile
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ecrpub_testkit.errors import ApplyError, DestroyError, TerraformCommandError
from ecrpub_testkit.terraform.options import TerraformOptions
from ecrpub_testkit.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerraformResult:
    """Result of a single terraform invocation."""

    success: bool
    stdout: str
    stderr: str
    return_code: int

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for error matching and logs."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def _validate_command_args(args: list[str]) -> None:
    for arg in args:
        if not isinstance(arg, str):
            raise TypeError(f"Terraform argument must be a string, got {type(arg).__name__}")
        if any(char in arg for char in ("\x00", "\n", "\r")):
            raise ValueError("Terraform argument contains an invalid control character")


def _stringify_output(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True)


class TerraformRunner:
    """Terraform CLI wrapper.

    Attributes:
        binary: Terraform executable name or path
    """

    def __init__(self, binary: str = "terraform") -> None:
        self.binary = binary

    def run(self, args: list[str], options: TerraformOptions) -> TerraformResult:
        """Run one terraform command and return its result without raising.

        Args:
            args: Command arguments (without the binary)
            options: Terraform options (directory and environment)

        Returns:
            TerraformResult
        """
        cmd = [self.binary, *args]
        _validate_command_args(cmd)
        env = {**os.environ, "TF_IN_AUTOMATION": "1", **dict(options.env_vars)}

        logger.debug(f"Running {' '.join(cmd)} in {options.terraform_dir}")
        completed = subprocess.run(
            cmd,
            cwd=str(options.terraform_dir),
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )

        return TerraformResult(
            success=completed.returncode == 0,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            return_code=completed.returncode,
        )

    def _retryable_reason(self, output: str, options: TerraformOptions) -> Optional[str]:
        for pattern, reason in options.retryable_errors.items():
            if re.search(pattern, output, flags=re.DOTALL):
                return reason
        return None

    def _run_checked(
        self,
        args: list[str],
        options: TerraformOptions,
        error_cls: type[TerraformCommandError] = TerraformCommandError,
    ) -> str:
        """Run a command with retries for known transient errors.

        Returns:
            Command stdout

        Raises:
            TerraformCommandError: (or error_cls) when the command ultimately fails
        """
        policy = RetryPolicy(
            max_attempts=max(options.max_retries, 1),
            delay_seconds=options.time_between_retries,
        )

        def attempt() -> str:
            try:
                result = self.run(args, options)
            except OSError as e:
                raise error_cls(
                    f"terraform {args[0]} could not be started with {self.binary}: {e}",
                    command=list(args),
                    return_code=127,
                    stderr=str(e),
                ) from e
            if result.success:
                return result.stdout
            raise error_cls(
                f"terraform {args[0]} failed with exit status {result.return_code}: {result.stderr.strip()}",
                command=list(args),
                return_code=result.return_code,
                stderr=result.output,
            )

        def is_retryable(error: Exception) -> bool:
            return isinstance(error, TerraformCommandError) and self._retryable_reason(error.stderr, options) is not None

        def on_retry(next_attempt: int, error: Exception) -> None:
            reason = self._retryable_reason(getattr(error, "stderr", ""), options)
            logger.warning(f"terraform {args[0]} hit a retryable error ({reason}); retrying")

        return policy.call(attempt, is_retryable=is_retryable, on_retry=on_retry)

    @contextmanager
    def _var_file_args(self, variables: Mapping[str, Any]) -> Iterator[list[str]]:
        """Write variables to a temporary .tfvars.json file for one command."""
        if not variables:
            yield []
            return

        fd, path = tempfile.mkstemp(prefix="ecrpub-testkit-", suffix=".tfvars.json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(dict(variables), f)
            yield [f"-var-file={path}"]
        finally:
            os.unlink(path)

    def init(self, options: TerraformOptions) -> str:
        return self._run_checked(["init", "-input=false", "-upgrade=false"], options)

    def apply(self, options: TerraformOptions) -> str:
        """Run terraform apply.

        Raises:
            ApplyError: If apply fails
        """
        with self._var_file_args(options.vars) as var_args:
            return self._run_checked(["apply", "-input=false", "-auto-approve", *var_args], options, ApplyError)

    def init_and_apply(self, options: TerraformOptions) -> str:
        """Run terraform init followed by apply.

        Raises:
            ApplyError: If either step fails
        """
        try:
            self.init(options)
        except TerraformCommandError as e:
            raise ApplyError(str(e), command=e.command, return_code=e.return_code, stderr=e.stderr) from e
        return self.apply(options)

    def destroy(self, options: TerraformOptions) -> str:
        """Run terraform destroy.

        Raises:
            DestroyError: If destroy fails
        """
        with self._var_file_args(options.vars) as var_args:
            return self._run_checked(["destroy", "-input=false", "-auto-approve", *var_args], options, DestroyError)

    def output_all(self, options: TerraformOptions) -> dict[str, str]:
        """Read all outputs as strings.

        Non-string values are JSON encoded; null outputs become "".
        """
        stdout = self._run_checked(["output", "-json"], options)
        raw = json.loads(stdout) if stdout.strip() else {}
        return {name: _stringify_output(entry.get("value")) for name, entry in raw.items()}

    def output(self, options: TerraformOptions, name: str) -> str:
        """Read one output as a string.

        Raises:
            KeyError: If the output does not exist
        """
        outputs = self.output_all(options)
        if name not in outputs:
            raise KeyError(f"Terraform output '{name}' not found in {options.terraform_dir}")
        return outputs[name]

    def validate(self, options: TerraformOptions) -> str:
        return self._run_checked(["validate", "-no-color"], options)

    def fmt_check(self, options: TerraformOptions) -> str:
        """Fail if any file under the directory is not canonically formatted."""
        return self._run_checked(["fmt", "-check", "-recursive"], options)


def options_for(terraform_dir: Path | str, **kwargs: Any) -> TerraformOptions:
    """Shorthand for TerraformOptions with a path conversion."""
    return TerraformOptions(terraform_dir=Path(terraform_dir), **kwargs)
