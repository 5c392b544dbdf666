"""
Opal CLI
========

Command-line interface for Opal.

Commands:
- parse: Print the parsed document
- check: Check files for syntax errors
- build: Build the project
- dev: Run development server
"""

from opal.cli.main import main, cli

__all__ = ["main", "cli"]
