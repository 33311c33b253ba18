"""Test data loading with repository name substitution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import SizeExceededError

logger = logging.getLogger(__name__)

MAX_DOCUMENT_SIZE = 1024 * 1024
REPOSITORY_NAME_PLACEHOLDER = "{{REPOSITORY_NAME}}"


@dataclass(frozen=True)
class TestDataDocument:
    """A test data file on disk.

    Attributes:
        path: File location
        size_limit: Largest size accepted, in bytes
        placeholder: Token replaced by the repository name
    """

    __test__ = False

    path: Path
    size_limit: int = MAX_DOCUMENT_SIZE
    placeholder: str = REPOSITORY_NAME_PLACEHOLDER

    def render(self, identifier: str) -> str:
        """Read the document and substitute every placeholder occurrence.

        Raises:
            SizeExceededError: If the file is larger than size_limit (nothing is read)
            OSError: If the file cannot be stat'ed or read
            UnicodeDecodeError: If the file is not valid UTF-8
        """
        size = self.path.stat().st_size
        if size > self.size_limit:
            raise SizeExceededError(
                f"Test data file {self.path} is {size} bytes, exceeding the {self.size_limit} byte limit",
                size=size,
                limit=self.size_limit,
            )
        content = self.path.read_text(encoding="utf-8")
        return content.replace(self.placeholder, identifier)


class TestDataLoader:
    """Loads test data documents from a root directory.

    Nothing is cached; each load reads the file again.
    """

    __test__ = False

    def __init__(self, root: Union[str, Path], size_limit: int = MAX_DOCUMENT_SIZE) -> None:
        self.root = Path(root)
        self.size_limit = size_limit

    @classmethod
    def from_config(cls, config: Config) -> TestDataLoader:
        """Loader rooted at config.testdata_root."""
        return cls(config.testdata_root)

    def document(self, name: str) -> TestDataDocument:
        """Resolve a document under the root.

        Raises:
            ValueError: If name resolves outside the root
        """
        root = self.root.resolve()
        path = (root / name).resolve()
        if path != root and root not in path.parents:
            raise ValueError(f"Test data path escapes {self.root}: {name}")
        return TestDataDocument(path=path, size_limit=self.size_limit)

    def load(self, name: str, identifier: str) -> str:
        """Load a document with the repository name substituted.

        Args:
            name: Path relative to the root
            identifier: Repository name to substitute

        Returns:
            Document text

        Raises:
            SizeExceededError: If the file is over the size limit
            OSError: If the file is missing or unreadable
            UnicodeDecodeError: If the file is not valid UTF-8
        """
        document = self.document(name)
        logger.debug(f"Loading test data {document.path}")
        return document.render(identifier)
