"""
Opal CLI Main Module
====================

Main CLI entry point with all commands.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from opal import __version__
from opal.cli.formatting import format_diagnostic
from opal.core.config import Config, load_config
from opal.engine.diagnostics import OpalError, OpalSyntaxError
from opal.utils.logger import configure_logging, get_logger

logger = get_logger("opal.cli")


def create_parser(config: Config) -> argparse.ArgumentParser:
    """Create argument parser with defaults taken from ``config``."""
    parser = argparse.ArgumentParser(
        prog="opal",
        description="Opal command line tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  opal parse src/index.opal          Print the parsed document
  opal parse src/index.opal --json   Print the document as JSON
  opal check src/*.opal              Check files for syntax errors
  opal build                         Build the project
  opal dev --port 3000               Run development server
        """,
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"Opal {__version__}",
    )
    parser.add_argument(
        "--log-level",
        default=config.get("log.level", "info"),
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level",
    )
    parser.add_argument(
        "--log-format",
        default=config.get("log.format", "text"),
        choices=["text", "json"],
        help="Log output format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a file and print the document",
    )
    parse_parser.add_argument("file", help="Opal source file")
    parse_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the document as JSON",
    )
    parse_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent JSON output",
    )

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check files for syntax errors",
    )
    check_parser.add_argument("files", nargs="+", help="Opal source files")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build the project",
    )
    build_parser.add_argument(
        "entry",
        nargs="?",
        default=config.get("build.entry"),
        help="Entry file",
    )
    build_parser.add_argument(
        "--output",
        default=config.get("build.outfile"),
        help="Output file",
    )

    # Dev command
    dev_parser = subparsers.add_parser(
        "dev",
        help="Run development server",
    )
    dev_parser.add_argument(
        "--host",
        default=config.get("dev.host"),
        help="Host to bind to",
    )
    dev_parser.add_argument(
        "--port",
        type=int,
        default=config.get_int("dev.port", 8080),
        help="Port to bind to",
    )
    dev_parser.add_argument(
        "--entry",
        default=config.get("build.entry"),
        help="Entry file",
    )
    dev_parser.add_argument(
        "--upstream",
        default=config.get("dev.upstream"),
        help="Bundler server to proxy other requests to",
    )

    return parser


def cli(args: Optional[List[str]] = None, config: Optional[Config] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)
        config: Configuration (loaded from the working directory if None)

    Returns:
        Exit code
    """
    config = config or load_config()
    parser = create_parser(config)
    parsed = parser.parse_args(args)

    configure_logging(level=parsed.log_level, format=parsed.log_format)

    if not parsed.command:
        parser.print_help()
        return 0

    handlers = {
        "parse": handle_parse,
        "check": handle_check,
        "build": handle_build,
        "dev": handle_dev,
    }

    handler = handlers[parsed.command]
    logger.debug("Running command", command=parsed.command)
    try:
        return handler(parsed)
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130
    except FileNotFoundError as e:
        print(f"Error: file not found: {e.filename}", file=sys.stderr)
        return 2
    except OpalSyntaxError as e:
        sys.stderr.write(format_diagnostic(e, stream=sys.stderr))
        return 1
    except OpalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def handle_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    from opal.cli.commands.parse import parse_file
    return parse_file(args.file, as_json=args.json, pretty=args.pretty)


def handle_check(args: argparse.Namespace) -> int:
    """Handle check command."""
    from opal.cli.commands.parse import check_files
    return check_files(args.files)


def handle_build(args: argparse.Namespace) -> int:
    """Handle build command."""
    from opal.cli.commands.build import build_project
    return build_project(args.entry, args.output)


def handle_dev(args: argparse.Namespace) -> int:
    """Handle dev command."""
    from opal.cli.commands.dev import run_server
    return run_server(args.host, args.port, args.entry, args.upstream)


def main() -> None:
    """Main entry point."""
    sys.exit(cli())


if __name__ == "__main__":
    main()
