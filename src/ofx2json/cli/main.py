"""Main CLI entry point for the ofx2json command-line tool.

Reads one OFX document from a file or stdin and writes its JSON tree to
stdout or an output file. Nothing is written when conversion fails.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ofx2json import __version__
from ofx2json.api import OFXConverter
from ofx2json.shared import (
    ConfigError,
    ConverterConfig,
    OFXConversionError,
    SchemaError,
    get_logger,
)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ofx2json",
        description="Convert an SGML OFX document to JSON"
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="OFX file to convert, or '-' for stdin (default: stdin)"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write JSON output to this file (default: stdout)"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    parser.add_argument(
        "--schema",
        type=Path,
        help="JSON schema file replacing the bundled OFX schema"
    )
    parser.add_argument(
        "--encoding",
        help="Decode input with this codec instead of the OFX header charset"
    )
    parser.add_argument(
        "--indent",
        type=int,
        help="Pretty-print output with this indentation (default: compact)"
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Do not output errors"
    )
    verbosity.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def build_config(args: argparse.Namespace) -> ConverterConfig:
    """Load the configuration file, if any, and apply command-line overrides."""
    config = ConverterConfig.from_file(args.config) if args.config else ConverterConfig()

    overrides = {}
    if args.quiet:
        overrides["quiet"] = True
    if args.schema:
        overrides["schema_path"] = str(args.schema)
    if args.encoding:
        overrides["encoding"] = args.encoding
    if args.indent is not None:
        overrides["json_indent"] = args.indent
    return config.override(**overrides) if overrides else config


def read_input(source: str) -> bytes:
    """Read the whole document from a path or from stdin."""
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


def cmd_convert(args: argparse.Namespace, config: ConverterConfig) -> int:
    """Convert one document and write its JSON."""
    logger = get_logger(__name__, config.correlation_id, "cli", config.quiet)

    def report(message: str) -> None:
        if not config.quiet:
            print(message, file=sys.stderr)

    try:
        converter = OFXConverter(config)
    except SchemaError as e:
        report(f"Error loading schema: {e}")
        return 1

    try:
        data = read_input(args.input)
    except OSError as e:
        report(f"File operation failed: {e}")
        return 1

    result = converter.convert_bytes(data)
    if not result.success:
        report(str(result.error))
        logger.debug("Conversion failed", extra={"input": args.input})
        return 1

    output = result.to_json(indent=config.json_indent) + "\n"
    if args.output:
        try:
            args.output.write_text(output, encoding="utf-8")
        except OSError as e:
            report(f"File operation failed: {e}")
            return 1
    else:
        sys.stdout.write(output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Set up logging verbosity
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        logging.basicConfig(level=logging.ERROR)

    try:
        config = build_config(args)
    except ConfigError as e:
        if not args.quiet:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        return cmd_convert(args, config)
    except OFXConversionError as e:
        if not config.quiet:
            print(str(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        if not config.quiet:
            print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
