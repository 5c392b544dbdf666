"""Opal CLI commands."""
