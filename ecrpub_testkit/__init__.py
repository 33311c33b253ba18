"""ECR Public test kit - ephemeral repository fixtures with guaranteed cleanup."""

__version__ = "0.1.0"
