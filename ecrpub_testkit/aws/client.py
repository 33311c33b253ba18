"""boto3 client factory."""

from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

# Standard-mode retries cover throttling; cleanup tiers handle everything else.
_BOTO_CONFIG = BotoConfig(retries={"max_attempts": 5, "mode": "standard"})


def create_boto_client(service_name: str, region_name: str, profile_name: Optional[str] = None) -> Any:
    """Create a boto3 client for a service.

    Args:
        service_name: AWS service name (e.g. "ecr-public")
        region_name: AWS region
        profile_name: AWS profile name (optional)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name) if profile_name else boto3.Session()
    return session.client(service_name, region_name=region_name, config=_BOTO_CONFIG)
