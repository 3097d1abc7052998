#!/usr/bin/env python3
"""Command-line interface for the PDF toolbox."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import configure_logging
from .models import InputFile, OperationRequest, Severity, StatusMessage
from .service import ToolboxService
from .utils.page_filter import parse_page_range

logger = logging.getLogger(__name__)

# CLI flag -> option key understood by the backends
OPTION_FLAGS = ["pages", "level", "text", "format", "start", "rotation", "scale"]


def print_status(status: StatusMessage) -> None:
    print(f"[{status.severity.value}] {status.message}", file=sys.stderr)


def collect_options(args: argparse.Namespace) -> Dict[str, str]:
    return {
        key: str(getattr(args, key))
        for key in OPTION_FLAGS
        if getattr(args, key, None) is not None
    }


def load_files(paths: List[str]) -> List[InputFile]:
    files = []
    for path in paths:
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"No such file: {path}")
        files.append(InputFile(p.name, p.read_bytes()))
    return files


def run_command(args: argparse.Namespace, service: Optional[ToolboxService] = None) -> int:
    """Run one toolbox action and write its output; returns the exit code."""
    service = service or ToolboxService()
    try:
        files = load_files(args.files)
    except FileNotFoundError as e:
        print_status(StatusMessage(str(e), Severity.ERROR))
        return 1

    request = OperationRequest.create(args.action, files, collect_options(args))
    result = service.run(request, notify=print_status)
    if not result.success:
        return 1

    output = Path(args.output) if args.output else Path(result.filename)
    output.write_bytes(result.data)
    logger.info(f"Wrote {len(result.data)} bytes to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PDF Toolbox CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Show the pages a range expression selects")
    parse_parser.add_argument("expression", help='Page range, e.g. "1-3,5,9-10"')

    # Run command
    run_parser = subparsers.add_parser("run", help="Run an operation on files")
    run_parser.add_argument("action", help="Operation name, e.g. split, merge, compress")
    run_parser.add_argument("files", nargs="+", help="Input PDF or image files")
    run_parser.add_argument("-o", "--output", help="Output path (default: operation's file name)")
    run_parser.add_argument("--pages", help="Page range for split, reorder, delete_pages, rotate, page_numbers")
    run_parser.add_argument("--level", type=int, help="Compression level 1-9")
    run_parser.add_argument("--text", help="Watermark text")
    run_parser.add_argument("--format", choices=["text", "markdown", "html"], help="Text export format")
    run_parser.add_argument("--start", type=int, help="First page number label")
    run_parser.add_argument("--rotation", type=int, help="Rotation in degrees (multiple of 90)")
    run_parser.add_argument("--scale", type=float, help="Render scale for image export")

    # Operations command
    subparsers.add_parser("operations", help="List available operations")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: HTTP_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: HTTP_PORT)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "parse":
        print(json.dumps(parse_page_range(args.expression)))
        return 0

    if args.command == "operations":
        for operation in ToolboxService().supported_operations():
            print(operation)
        return 0

    if args.command == "run":
        return run_command(args)

    if args.command == "serve":
        from .http_server import run_server
        try:
            run_server(host=args.host, port=args.port)
        except Exception as e:
            logger.error(f"Server error: {e}", exc_info=True)
            return 1
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
