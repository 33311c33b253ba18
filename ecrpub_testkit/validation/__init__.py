"""Repository name validation."""
