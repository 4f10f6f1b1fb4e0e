#!/usr/bin/env python3
"""
Command line front end for the bfexe interpreter.

Usage:
    bfexe '++++++++[>++++++++<-]>+.'
    bfexe -f hello.bf -o out.txt --max-steps 100000
    bfexe -f prog.bf -i "input data" --eof error --print-cells
    bfexe -f prog.bf --debug -i "abc"

Options not given on the command line come from --config (JSON/YAML), then
BF_* environment variables (a .env file in the working directory is loaded
first), then the built-in defaults.
"""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from bfexe.config import EofPolicy, InterpreterConfig, config_from_env, load_config
from bfexe.debugger import BrainfuckDebugger
from bfexe.errors import BrainfuckError
from bfexe.interpreter import Interpreter
from bfexe.runner import load_source
from bfexe.tape import used_length


def init_logging(verbose: bool = False) -> None:
    """Send library log records to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)5s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bfexe", description="A Brainfuck interpreter")
    ap.add_argument("code", nargs="?", help="Brainfuck program text (required unless -f is given)")
    ap.add_argument("-f", "--file", help="Read the program from a file instead")
    ap.add_argument("-i", "--input", help="Input data for ',' instead of STDIN")
    ap.add_argument("-o", "--output", help="Write program output to a file instead of STDOUT")
    ap.add_argument("--config", help="Path to a JSON or YAML interpreter config")
    ap.add_argument("--tape-length", type=int, help="Initial number of cells")
    ap.add_argument("--fixed-tape", action="store_true", help="Fail instead of growing the tape past its length")
    ap.add_argument("--no-wrap", action="store_true", help="Fail instead of wrapping cells past 0..255")
    ap.add_argument("--max-steps", type=int, help="Maximum number of instructions to execute")
    ap.add_argument("--eof", choices=[p.value for p in EofPolicy], help="Behaviour of ',' at end of input")
    ap.add_argument("--eof-value", type=int, help="Byte stored by ',' at end of input (implies --eof value)")
    ap.add_argument("--no-flush", action="store_true", help="Do not flush the output after every '.'")
    ap.add_argument("--print-cells", action="store_true", help="Print the used memory cells after execution")
    ap.add_argument("--time", action="store_true", help="Print execution statistics after execution")
    ap.add_argument("--debug", action="store_true", help="Run in the step-by-step debugger")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
    return ap


def resolve_config(args: argparse.Namespace) -> InterpreterConfig:
    config = config_from_env()
    if args.config:
        config = load_config(args.config, base=config)

    changes = {}
    if args.tape_length is not None:
        changes['tape_length'] = args.tape_length
    if args.fixed_tape:
        changes['allow_growth'] = False
    if args.no_wrap:
        changes['wrapping_cells'] = False
    if args.max_steps is not None:
        changes['max_steps'] = args.max_steps
    if args.eof:
        changes['eof_policy'] = EofPolicy(args.eof)
    if args.eof_value is not None:
        changes['eof_value'] = args.eof_value
        if not args.eof:
            changes['eof_policy'] = EofPolicy.VALUE
    if args.no_flush:
        changes['flush_output'] = False
    if args.time:
        changes['bench_execution'] = True
    return config.replace(**changes)


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    init_logging(args.verbose)
    load_dotenv(find_dotenv(usecwd=True))

    if args.code is not None:
        code = args.code
    elif args.file:
        try:
            code = load_source(args.file)
        except OSError as e:
            print(f"Could not open the provided file: {args.file} ({e})", file=sys.stderr)
            return 1
    else:
        ap.print_help(sys.stderr)
        return 2

    try:
        config = resolve_config(args)
    except (OSError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.debug:
        try:
            debugger = BrainfuckDebugger(code, config, input_data=args.input or b'')
        except BrainfuckError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        error = debugger.run()
        return 1 if error is not None else 0

    out_file = None
    try:
        if args.output:
            try:
                out_file = open(args.output, 'wb')
            except OSError as e:
                print(f"Failed to open the provided file: {args.output} ({e})", file=sys.stderr)
                return 1
        interpreter = Interpreter(config, sink=out_file, source=args.input)
        try:
            info = interpreter.execute(code)
        except BrainfuckError as e:
            sys.stdout.flush()
            print(f"\nError: {e}", file=sys.stderr)
            return 1
    finally:
        if out_file is not None:
            out_file.close()

    if args.print_cells:
        used = max(info.pointer + 1, used_length(info.cells))
        print(f"\n\nCELLS: {info.cells[:used].tolist()}")
    if args.time:
        print(f"\nInstructions: {info.instructions}  Time: {info.time:.6f}s  Pointer: {info.pointer}  "
              f"Memory: {info.mem_size} cells")
    return 0


if __name__ == "__main__":
    sys.exit(main())
