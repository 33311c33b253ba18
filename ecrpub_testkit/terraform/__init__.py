"""Terraform command execution."""
