"""Test data loading."""
