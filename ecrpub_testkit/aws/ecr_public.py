"""ECR Public administrative API access.

Thin wrapper over the boto3 ``ecr-public`` client used by the quota guard and
by the direct-delete cleanup tiers. Botocore errors are translated into
AdminApiError here so callers deal with a single error type.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ecrpub_testkit.aws.client import create_boto_client
from ecrpub_testkit.config import DEFAULT_REGION
from ecrpub_testkit.errors import AdminApiError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ("RepositoryNotFoundException",)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def _error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", str(error))


class EcrPublicAdmin:
    """Administrative operations on ECR Public repositories.

    Attributes:
        aws_profile: AWS profile name (optional)
        default_region: Region used when a call does not pass one
    """

    SERVICE_NAME = "ecr-public"

    def __init__(self, aws_profile: Optional[str] = None, default_region: str = DEFAULT_REGION) -> None:
        self.aws_profile = aws_profile
        self.default_region = default_region

    def _client(self, region: Optional[str]) -> Any:
        return create_boto_client(
            service_name=self.SERVICE_NAME,
            region_name=region or self.default_region,
            profile_name=self.aws_profile,
        )

    def repository_exists(self, repository_name: str, region: Optional[str] = None) -> bool:
        """Check whether a repository exists.

        Args:
            repository_name: Repository name
            region: AWS region (default: default_region)

        Returns:
            True if the repository exists, False if AWS reports it absent

        Raises:
            AdminApiError: If the check itself failed
        """
        try:
            client = self._client(region)
            client.describe_repositories(repositoryNames=[repository_name])
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in NOT_FOUND_CODES:
                logger.debug(f"Repository {repository_name} not found")
                return False
            raise AdminApiError(
                f"Failed to describe repository {repository_name}: {error_code} - {_error_message(e)}",
                error_code=error_code,
            ) from e
        except BotoCoreError as e:
            raise AdminApiError(f"Failed to describe repository {repository_name}: {e}") from e

    def delete_repository(self, repository_name: str, region: Optional[str] = None, force: bool = True) -> None:
        """Delete a repository.

        A repository that is already gone counts as deleted.

        Args:
            repository_name: Repository name
            region: AWS region (default: default_region)
            force: Delete even if the repository still holds images

        Raises:
            AdminApiError: If the delete call failed
        """
        try:
            client = self._client(region)
            client.delete_repository(repositoryName=repository_name, force=force)
            logger.info(f"Deleted repository via API: {repository_name}")
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in NOT_FOUND_CODES:
                logger.info(f"Repository {repository_name} already deleted")
                return
            raise AdminApiError(
                f"Failed to delete repository {repository_name}: {error_code} - {_error_message(e)}",
                error_code=error_code,
            ) from e
        except BotoCoreError as e:
            raise AdminApiError(f"Failed to delete repository {repository_name}: {e}") from e

    def count_repositories(self, region: Optional[str] = None) -> int:
        """Count repositories in a region.

        Args:
            region: AWS region (default: default_region)

        Returns:
            Number of repositories owned by the caller's registry

        Raises:
            AdminApiError: If listing failed
        """
        return len(self.list_repository_names(region=region))

    def list_repository_names(self, prefix: str = "", region: Optional[str] = None) -> list[str]:
        """List repository names, optionally filtered by prefix.

        Raises:
            AdminApiError: If listing failed
        """
        names: list[str] = []
        try:
            client = self._client(region)
            paginator = client.get_paginator("describe_repositories")
            for page in paginator.paginate():
                for repository in page.get("repositories", []):
                    name = repository.get("repositoryName", "")
                    if name.startswith(prefix):
                        names.append(name)
        except ClientError as e:
            error_code = _error_code(e)
            raise AdminApiError(
                f"Failed to list repositories: {error_code} - {_error_message(e)}", error_code=error_code
            ) from e
        except BotoCoreError as e:
            raise AdminApiError(f"Failed to list repositories: {e}") from e

        return sorted(names)
