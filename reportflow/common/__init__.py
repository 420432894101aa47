"""Utilities shared across reportflow packages."""
