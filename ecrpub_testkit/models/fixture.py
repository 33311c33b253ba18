"""Fixture configuration and handle models.

A fixture is configured with exactly one of two shapes:

    FlatVars          top-level terraform variables (scalars and lists)
    StructuredObject  catalog fields nested under a single object variable

The identifier is merged in as ``repository_name`` either way.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from ecrpub_testkit.errors import ConfigurationError
from ecrpub_testkit.terraform.options import TerraformOptions

REPOSITORY_NAME_VAR = "repository_name"
CATALOG_DATA_VAR = "catalog_data"

STRUCTURED_REQUIRED_KEYS = (
    "description",
    "about_text",
    "usage_text",
    "architectures",
    "operating_systems",
)

_SCALARS = (str, int, float, bool)


def _check_flat_value(key: str, value: Any) -> None:
    if value is None or isinstance(value, _SCALARS):
        return
    if isinstance(value, (list, tuple)) and all(isinstance(v, _SCALARS) for v in value):
        return
    raise ConfigurationError(
        f"Flat variable '{key}' must be a scalar or a list of scalars, got {type(value).__name__}. "
        "Use a structured object for nested data."
    )


@dataclass(frozen=True)
class FlatVars:
    """Flat terraform variables.

    Attributes:
        values: Variable name -> scalar or list of scalars
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key, value in self.values.items():
            _check_flat_value(key, value)

    def to_terraform_vars(self, identifier: str) -> dict[str, Any]:
        merged = {key: list(value) if isinstance(value, tuple) else value for key, value in self.values.items()}
        merged[REPOSITORY_NAME_VAR] = identifier
        return merged


@dataclass(frozen=True)
class StructuredObject:
    """Catalog data nested under one object variable.

    Attributes:
        description: Short repository description
        about_text: Markdown "about" section
        usage_text: Markdown usage section
        architectures: Supported architectures (e.g. "x86-64", "ARM 64")
        operating_systems: Supported operating systems
        object_key: Name of the object variable (default: catalog_data)
        extra_vars: Additional flat top-level variables
    """

    description: str
    about_text: str
    usage_text: str
    architectures: tuple[str, ...]
    operating_systems: tuple[str, ...]
    object_key: str = CATALOG_DATA_VAR
    extra_vars: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "architectures", tuple(self.architectures))
        object.__setattr__(self, "operating_systems", tuple(self.operating_systems))
        for key, value in self.extra_vars.items():
            _check_flat_value(key, value)
        if self.object_key in self.extra_vars or REPOSITORY_NAME_VAR in self.extra_vars:
            raise ConfigurationError(f"extra_vars cannot redefine '{self.object_key}' or '{REPOSITORY_NAME_VAR}'")

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        object_key: str = CATALOG_DATA_VAR,
        extra_vars: Optional[Mapping[str, Any]] = None,
    ) -> StructuredObject:
        """Build from a mapping holding all required catalog keys.

        Raises:
            ConfigurationError: If required keys are missing or unknown keys present
        """
        missing = [key for key in STRUCTURED_REQUIRED_KEYS if key not in data]
        if missing:
            raise ConfigurationError(f"Structured configuration missing required keys: {', '.join(missing)}")
        unknown = sorted(set(data) - set(STRUCTURED_REQUIRED_KEYS))
        if unknown:
            raise ConfigurationError(f"Structured configuration has unknown keys: {', '.join(unknown)}")

        return cls(
            description=data["description"],
            about_text=data["about_text"],
            usage_text=data["usage_text"],
            architectures=tuple(data["architectures"]),
            operating_systems=tuple(data["operating_systems"]),
            object_key=object_key,
            extra_vars=dict(extra_vars or {}),
        )

    def catalog_fields(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "about_text": self.about_text,
            "usage_text": self.usage_text,
            "architectures": list(self.architectures),
            "operating_systems": list(self.operating_systems),
        }

    def to_terraform_vars(self, identifier: str) -> dict[str, Any]:
        merged = {key: list(value) if isinstance(value, tuple) else value for key, value in self.extra_vars.items()}
        merged[REPOSITORY_NAME_VAR] = identifier
        merged[self.object_key] = self.catalog_fields()
        return merged


FixtureConfiguration = Union[FlatVars, StructuredObject]


class FixtureConfigurationBuilder:
    """Builds a FixtureConfiguration with exactly one variant populated.

    Example:
        config = FixtureConfigurationBuilder().flat_vars(create_repository_policy=False).build()
    """

    def __init__(self) -> None:
        self._flat: Optional[dict[str, Any]] = None
        self._structured: Optional[StructuredObject] = None

    def flat_vars(self, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> FixtureConfigurationBuilder:
        """Add flat variables. Repeated calls merge."""
        if self._flat is None:
            self._flat = {}
        self._flat.update(values or {})
        self._flat.update(kwargs)
        return self

    def structured(
        self,
        data: Union[StructuredObject, Mapping[str, Any]],
        object_key: str = CATALOG_DATA_VAR,
    ) -> FixtureConfigurationBuilder:
        """Set the structured object variant."""
        if self._structured is not None:
            raise ConfigurationError("Structured object already set")
        if isinstance(data, StructuredObject):
            self._structured = data
        else:
            self._structured = StructuredObject.from_mapping(data, object_key=object_key)
        return self

    def build(self) -> FixtureConfiguration:
        """Return the configured variant.

        Raises:
            ConfigurationError: If neither or both variants were populated
        """
        if self._flat is not None and self._structured is not None:
            raise ConfigurationError("Fixture configuration must use flat variables or a structured object, not both")
        if self._structured is not None:
            return self._structured
        if self._flat is not None:
            return FlatVars(values=dict(self._flat))
        raise ConfigurationError("Fixture configuration is empty: set flat variables or a structured object")


@dataclass(frozen=True)
class FixtureHandle:
    """Handle to one ephemeral repository fixture.

    Owned by the test that created it and passed to the cleanup orchestrator.
    Outputs are a read-only snapshot of terraform's outputs after apply.

    Attributes:
        identifier: Validated repository name
        region: Region the repository lives in
        options: Terraform options used for apply and destroy (optional)
        outputs: Terraform outputs (read-only)
        applied: True once apply succeeded
    """

    identifier: str
    region: str
    options: Optional[TerraformOptions] = None
    outputs: Mapping[str, str] = field(default_factory=dict)
    applied: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "outputs", MappingProxyType(dict(self.outputs)))

    def output(self, name: str) -> str:
        """Return a single output value.

        Raises:
            KeyError: If terraform did not report the output
        """
        try:
            return self.outputs[name]
        except KeyError:
            available = ", ".join(sorted(self.outputs)) or "(none)"
            raise KeyError(f"Output '{name}' not found for {self.identifier}. Available: {available}") from None

    def with_outputs(self, outputs: Mapping[str, str]) -> FixtureHandle:
        return replace(self, outputs=dict(outputs), applied=True)
