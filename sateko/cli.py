from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .bf_interpreter import BrainfuckInterpreter, ExecutionError
from .codegen import LLVMCodeGenerator
from .program import DEFAULT_TAPE_LENGTH, EOFPolicy, StructureError, parse

LLVM_OUTPUT = "out.ll"

logger = logging.getLogger(__name__)


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_text(encoding="utf-8")


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="sateko brainfuck compiler")
    parser.add_argument("source", help="Path to script")
    parser.add_argument(
        "-o",
        "--output",
        default=LLVM_OUTPUT,
        help=f"Destination file for emitted LLVM IR (default: {LLVM_OUTPUT})",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the LLVM IR to stdout instead of writing a file",
    )
    parser.add_argument(
        "--run",
        action="store_true",
        help="Interpret the program instead of emitting LLVM IR",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="Input string for --run (default: read from stdin)",
    )
    parser.add_argument(
        "-t",
        "--tape-length",
        type=int,
        default=DEFAULT_TAPE_LENGTH,
        help=f"Number of cells on tape (default: {DEFAULT_TAPE_LENGTH})",
    )
    parser.add_argument(
        "--eof",
        choices=[policy.value for policy in EOFPolicy],
        default=EOFPolicy.ZERO.value,
        help="Behaviour of ',' once input is exhausted (default: zero)",
    )
    parser.add_argument(
        "--no-bounds-check",
        action="store_true",
        help="Do not guard pointer moves in the emitted IR",
    )
    parser.add_argument("--triple", default="", help="Target triple recorded in the module")
    parser.add_argument(
        "-d",
        "--debug",
        action="count",
        default=0,
        help="Enable debug output (repeat for more)",
    )
    args = parser.parse_args(argv)
    _configure_logging(args.debug)

    if args.tape_length < 1:
        print("Tape length must be positive", file=sys.stderr)
        return 1

    try:
        source_text = _read_source(args.source)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Failed to read \"{args.source}\": {exc}", file=sys.stderr)
        return 1

    try:
        program = parse(source_text)
    except StructureError as exc:
        print(f"Parse failed: {exc}", file=sys.stderr)
        return 1
    logger.info(
        "parsed %s: %d instruction(s), %d loop(s), depth %d",
        args.source,
        len(program),
        program.loop_count,
        program.max_depth,
    )

    eof_policy = EOFPolicy(args.eof)

    if args.run:
        interpreter = BrainfuckInterpreter(
            tape_length=args.tape_length,
            eof_policy=eof_policy,
            debug=args.debug > 1,
        )
        input_data = args.input if args.input is not None else sys.stdin.buffer
        try:
            interpreter.run(program, input_data=input_data, output=sys.stdout.buffer)
        except ExecutionError as exc:
            sys.stdout.flush()
            print(f"Runtime error: {exc}", file=sys.stderr)
            return 1
        return 0

    generator = LLVMCodeGenerator(
        tape_length=args.tape_length,
        eof_policy=eof_policy,
        check_bounds=not args.no_bounds_check,
        module_name=args.source,
        triple=args.triple,
    )
    if args.stdout:
        generator.write(program, sys.stdout)
        return 0
    try:
        generator.write(program, args.output)
    except OSError as exc:
        print(f"Failed to generate LLVM IR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
