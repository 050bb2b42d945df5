#!/usr/bin/env python3
"""
byterun: byteasm program runner CLI

Usage:
    python byterun.py <program.basm | -> [-e TEXT] [--set ADDR=VALUE ...]
                      [--image mem.bin] [-o final.bin] [--format hex|json|bin]
                      [--ast] [--config settings.json] [-v|-vv|-q] [--log-file F]

The program is parsed completely before anything runs; the final memory
is printed to stdout in the chosen format and optionally written to a
256-byte image with -o.

Examples:
    python byterun.py prog.basm
    python byterun.py -e "MOV #01 #00  ADD @01 1" --set 0x00=0x19
    python byterun.py prog.basm --image start.bin -o end.bin --format json
    python byterun.py prog.basm --ast
"""

import argparse
import json
import logging
import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from byteasm import Memory, __version__
from byteasm.ast_nodes import EvaluationError
from byteasm.config import OUTPUT_FORMATS, ConfigError, RunConfig, build_memory
from byteasm.lexer import ParseError
from byteasm.log_setup import setup_logging
from byteasm.parser import parse_program

log = logging.getLogger("byteasm.cli")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="byterun",
        description="Run byteasm programs against 256 bytes of memory",
        epilog="Formats: " + ", ".join(OUTPUT_FORMATS),
    )
    parser.add_argument("source", nargs="?",
                        help="Program file ('-' reads stdin)")
    parser.add_argument("-e", "--eval", metavar="TEXT",
                        help="Run program text given on the command line")
    parser.add_argument("--set", action="append", metavar="ADDR=VALUE",
                        help="Preset a memory cell (repeatable, hex or decimal)")
    parser.add_argument("--image", help="Preload memory from a raw binary image")
    parser.add_argument("-o", "--output", help="Write the final memory image to a file")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, default=None,
                        help="How final memory is printed (default: hex)")
    parser.add_argument("--ast", action="store_true",
                        help="Print the parsed program and exit (debug)")
    parser.add_argument("--config", help="JSON file with default settings")
    parser.add_argument("--verbose", "-v", action="count", default=None,
                        help="More logging (-v info, -vv per-instruction trace)")
    parser.add_argument("--quiet", "-q", action="store_true", default=None,
                        help="Only log errors")
    parser.add_argument("--log-file", help="Also write a full debug log here")
    parser.add_argument("--version", action="version",
                        version=f"byterun {__version__}")
    return parser


def read_program(config: RunConfig) -> str:
    if config.inline is not None:
        return config.inline
    if config.source in (None, "-"):
        return sys.stdin.read()
    try:
        with open(config.source, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ConfigError(f"Cannot read {config.source}: {e}") from e


def format_memory(memory: Memory, fmt: str):
    """Render final memory for stdout: str for hex/json, bytes for bin."""
    if fmt == "bin":
        return bytes(memory)
    if fmt == "json":
        return json.dumps({
            "memory": list(memory),
            "nonzero": {f"0x{a:02X}": v for a, v in memory.nonzero().items()},
        }, indent=2)
    return memory.hexdump()


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        config = RunConfig.from_args(args)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.verbose, config.quiet, config.log_file)

    try:
        source = read_program(config)
        program = parse_program(source)
        log.info("Parsed %d instruction(s)", len(list(program)))

        if config.dump_ast:
            print(program)
            return 0

        memory = build_memory(config)
        before = memory.snapshot()
        program.eval(memory)
        changed = sum(1 for a, b in zip(before, memory.snapshot()) if a != b)
        log.info("Run complete, %d cell(s) changed", changed)

        if config.output:
            try:
                config.output.write_bytes(bytes(memory))
            except OSError as e:
                raise ConfigError(f"Cannot write {config.output}: {e}") from e
            log.info("Wrote memory image to %s", config.output)

        result = format_memory(memory, config.format)
        if isinstance(result, bytes):
            sys.stdout.buffer.write(result)
        else:
            print(result)

    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1
    except ParseError as e:
        print(f"{e}", file=sys.stderr)
        return 1
    except EvaluationError as e:
        print(f"Runtime error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        log.exception("Internal error")
        print(f"Internal error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
