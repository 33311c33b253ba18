"""Repository name validation.

Names are interpolated into terraform variables, CLI commands and log
messages, so they are validated before any remote call is made.
"""

from __future__ import annotations

import re
import uuid

from ecrpub_testkit.errors import ValidationError

MAX_IDENTIFIER_LENGTH = 256

IDENTIFIER_PATTERN = re.compile(r"[a-z0-9-]+")


class IdentifierValidator:
    """Validator for ECR Public repository names.

    Checks, in order:
        1. non-empty
        2. at most 256 characters
        3. only lowercase letters, digits and hyphens
        4. no ".." sequence
        5. no leading or trailing hyphen

    Attributes:
        max_length: Maximum allowed length
    """

    def __init__(self, max_length: int = MAX_IDENTIFIER_LENGTH) -> None:
        self.max_length = max_length

    def validate(self, candidate: str) -> str:
        """Validate a repository name.

        Args:
            candidate: Proposed repository name

        Returns:
            The validated name, unchanged

        Raises:
            ValidationError: On the first rule the name violates
        """
        if not isinstance(candidate, str):
            raise ValidationError(f"Repository name must be a string, got {type(candidate).__name__}", "")

        if len(candidate) == 0:
            raise ValidationError("Repository name cannot be empty", candidate)

        if len(candidate) > self.max_length:
            raise ValidationError(f"Repository name must be {self.max_length} characters or less", candidate)

        if not IDENTIFIER_PATTERN.fullmatch(candidate):
            raise ValidationError(
                f"Invalid repository name format: {candidate}. Repository names must contain only "
                "lowercase letters, numbers, and hyphens.",
                candidate,
            )

        if ".." in candidate:
            raise ValidationError("Repository name cannot contain '..' patterns", candidate)

        if candidate.startswith("-") or candidate.endswith("-"):
            raise ValidationError("Repository name cannot start or end with hyphens", candidate)

        return candidate

    def is_valid(self, candidate: str) -> bool:
        try:
            self.validate(candidate)
        except ValidationError:
            return False
        return True


_default_validator = IdentifierValidator()


def validate_identifier(candidate: str) -> str:
    """Validate a repository name with the default rules."""
    return _default_validator.validate(candidate)


def is_valid_identifier(candidate: str) -> bool:
    return _default_validator.is_valid(candidate)


def sanitize_identifier(candidate: str) -> str:
    """Return a name that is safe for string interpolation.

    Validation is the sanitization: a name that passes contains nothing that
    needs escaping.
    """
    return validate_identifier(candidate)


def unique_identifier(prefix: str = "terratest", length: int = 8) -> str:
    """Generate a unique, validated repository name.

    Args:
        prefix: Name prefix (e.g. "terratest-catalog")
        length: Number of random hex characters appended

    Returns:
        Name of the form "<prefix>-<random hex>"

    Raises:
        ValidationError: If the prefix produces an invalid name
    """
    suffix = uuid.uuid4().hex[:length]
    return validate_identifier(f"{prefix.lower()}-{suffix}")
