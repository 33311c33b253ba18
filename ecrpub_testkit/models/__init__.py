"""Data models for fixtures, quota snapshots and cleanup records."""
