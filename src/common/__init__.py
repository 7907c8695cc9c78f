"""Shared helpers: HTTP access, logging utilities and exception types."""
