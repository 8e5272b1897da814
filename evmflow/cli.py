#!/usr/bin/env python3
"""
Command line entry point.

Reads hex bytecode, resolves the targets of calls and the slots and values
of storage writes, and prints them as text, JSON or YAML. Without --calls an
annotated disassembly listing is printed instead.
"""

import argparse
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import LoggerFactory

from evmflow.analyzer import analyze_bytecode
from evmflow.config import DEFAULT_MAX_TRACE_DEPTH, DEFAULT_OUTPUT_FORMAT, OUTPUT_FORMATS, AnalysisConfig
from evmflow.disassembler import parse_hex
from evmflow.output import render_json, render_text, render_yaml

logger = structlog.get_logger()


def configure_logging(verbose: bool = False) -> None:
    """Configure structured logging on stderr, keeping stdout for results."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evmflow",
        description="Resolve constant call targets and storage writes in EVM bytecode",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--bytecode", help="Hex encoded bytecode (default: read from stdin)")
    source.add_argument("--bytecode-file", help="File containing hex encoded bytecode")
    parser.add_argument(
        "--no-swarm",
        dest="swarm",
        action="store_false",
        help="Keep the swarm metadata hash solc appends instead of stripping it before analysis",
    )
    parser.add_argument(
        "--print-swarm",
        action="store_true",
        help="Print the swarm hash if one was found",
    )
    parser.add_argument(
        "--ctor",
        action="store_true",
        help="The bytecode includes constructor code; analyze both phases separately",
    )
    parser.add_argument(
        "--calls",
        action="store_true",
        help="Print constant addresses that are called and constant storage writes",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=DEFAULT_OUTPUT_FORMAT,
        help="Output format for --calls results",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_TRACE_DEPTH,
        help="Maximum depth of backward traces",
    )
    parser.add_argument("--log", action="store_true", help="Print logging output")
    return parser


def read_bytecode(args) -> bytes:
    if args.bytecode is not None:
        text = args.bytecode
    elif args.bytecode_file:
        with open(args.bytecode_file, "r") as f:
            text = f.read()
    else:
        text = sys.stdin.read()
    return parse_hex(text)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log)

    if args.format != "text" and not args.calls:
        logger.warning("Structured output is only supported together with --calls", format=args.format)

    try:
        config = AnalysisConfig(
            max_trace_depth=args.max_depth,
            strip_swarm=args.swarm,
            ctor=args.ctor,
            calls=args.calls,
        )
        result = analyze_bytecode(read_bytecode(args), config)
    except (OSError, ValueError) as e:
        logger.error("Analysis failed", error=str(e))
        return 1

    if args.calls and args.format == "json":
        print(render_json(result, args.print_swarm))
    elif args.calls and args.format == "yaml":
        print(render_yaml(result, args.print_swarm), end="")
    else:
        print(render_text(result, calls=args.calls, print_swarm=args.print_swarm))
    return 0


if __name__ == "__main__":
    sys.exit(main())
