"""Pre-flight quota checks."""
