"""Catalog data and tag generators for repository fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ecrpub_testkit.models.fixture import FlatVars, StructuredObject
from ecrpub_testkit.validation.identifier import validate_identifier

CREATED_BY = "terraform-aws-ecrpublic-tests"


def _usage_text(identifier: str) -> str:
    return f"# Usage\n```bash\ndocker pull public.ecr.aws/registry/{identifier}:latest\n```"


def minimal_catalog_data(identifier: str) -> StructuredObject:
    """Minimal valid catalog data as a structured object.

    Keeps API usage low for tests that do not exercise catalog content.
    """
    validate_identifier(identifier)
    return StructuredObject(
        description="Test container",
        about_text="# Test\nBasic test container.",
        usage_text=_usage_text(identifier),
        architectures=("x86-64",),
        operating_systems=("Linux",),
    )


def minimal_variable_catalog_data(identifier: str) -> FlatVars:
    """Minimal valid catalog data as individual catalog_data_* variables."""
    validate_identifier(identifier)
    return FlatVars(
        values={
            "catalog_data_description": "Test container",
            "catalog_data_about_text": "# Test\nBasic test container.",
            "catalog_data_usage_text": _usage_text(identifier),
            "catalog_data_architectures": ["x86-64"],
            "catalog_data_operating_systems": ["Linux"],
        }
    )


def generate_test_tags(test_name: str, unique_id: str, created_at: Optional[datetime] = None) -> dict[str, str]:
    """Tags that identify test resources for tracking and orphan cleanup.

    Args:
        test_name: Name of the test creating the resource
        unique_id: Unique run identifier
        created_at: Creation time (default: now, UTC)

    Returns:
        Tag key -> value
    """
    timestamp = (created_at or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
    return {
        "Purpose": "terratest",
        "TestRun": unique_id,
        "TestName": test_name,
        "CreatedAt": timestamp,
        "CreatedBy": CREATED_BY,
        "Environment": "test",
        "ManagedBy": "terratest",
    }
