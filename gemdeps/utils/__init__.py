"""Shared utilities (configuration, logging)."""
