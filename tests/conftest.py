"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from ecrpub_testkit.aws.ecr_public import EcrPublicAdmin
from ecrpub_testkit.config import Config
from ecrpub_testkit.validation.identifier import unique_identifier


@pytest.fixture
def unique_name() -> str:
    """Unique, valid repository name for one test."""
    return unique_identifier("terratest-unit")


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config with no skip signals and audit logs under tmp_path."""
    return Config(audit_dir=str(tmp_path / "audit-logs"))


@pytest.fixture
def mock_admin() -> Mock:
    """Administrative client double."""
    return Mock(spec=EcrPublicAdmin)
