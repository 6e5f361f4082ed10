"""Shared utilities for chat relay services."""
