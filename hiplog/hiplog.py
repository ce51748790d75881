#!/usr/bin/env python
from __future__ import annotations
import sys
import os
import argparse
import warnings
from typing import List, Optional, Type
from hiplog.lib.hyperloglog import HyperLogLog
from hiplog.lib.hyperloglog_hip import HyperLogLogHIP
from hiplog.lib.errors import ConfigurationError, SketchFormatError
from hiplog.lib.serialization import MAX_PRECISION, MIN_PRECISION

# Precision above this allocates more memory per file than is usually useful
MAX_RECOMMENDED_PRECISION = 18

def sketch_class(classic: bool) -> Type[HyperLogLog]:
    """Choose the sketch implementation for the command line flags."""
    return HyperLogLog if classic else HyperLogLogHIP

def sketch_file(filepath: str, precision: int = 14, seed: int = 42,
                classic: bool = False, debug: bool = False) -> HyperLogLog:
    """Build a sketch from a text file, one element per non-empty line.

    Args:
        filepath: Path to a line-oriented text file
        precision: Number of bits for register indexing
        seed: Seed for hashing
        classic: Use the classic estimator instead of HIP
        debug: Whether to print debug information

    Returns:
        Populated sketch
    """
    sketch = sketch_class(classic)(precision=precision, seed=seed, debug=debug)
    count = 0
    with open(filepath, 'rb') as f:
        for line in f:
            line = line.rstrip(b'\r\n')
            if line:
                sketch.add(line)
                count += 1
    if debug:
        print(f"DEBUG: {filepath}: {count} lines, estimate={sketch.estimate():.1f}")
    return sketch

def load_sketch(filepath: str, classic: bool = False, debug: bool = False) -> HyperLogLog:
    """Load a persisted sketch, exiting with status 2 on failure."""
    if not os.path.exists(filepath):
        print(f"Error: File {filepath} does not exist", file=sys.stderr)
        sys.exit(2)
    try:
        return sketch_class(classic).load(filepath, debug=debug)
    except (SketchFormatError, OSError) as e:
        print(f"Error: cannot load sketch {filepath}: {e}", file=sys.stderr)
        sys.exit(2)

def require_files(filepaths: List[str]) -> None:
    for filepath in filepaths:
        if not os.path.exists(filepath):
            print(f"Error: File {filepath} does not exist", file=sys.stderr)
            sys.exit(2)

def cmd_count(args: argparse.Namespace) -> None:
    require_files(args.files)
    for filepath in args.files:
        sketch = sketch_file(filepath, args.precision, args.seed, args.classic, args.debug)
        print(f"{filepath}\t{sketch.estimate():.2f}")

def cmd_sketch(args: argparse.Namespace) -> None:
    require_files([args.file])
    sketch = sketch_file(args.file, args.precision, args.seed, args.classic, args.debug)
    sketch.write(args.output)
    print(f"Wrote sketch of {args.file} to {args.output} (estimate {sketch.estimate():.2f})")

def cmd_merge(args: argparse.Namespace) -> None:
    merged = load_sketch(args.sketches[0], args.classic, args.debug)
    for filepath in args.sketches[1:]:
        other = load_sketch(filepath, args.classic, args.debug)
        try:
            merged.merge(other)
        except ConfigurationError as e:
            print(f"Error: cannot merge {filepath}: {e}", file=sys.stderr)
            sys.exit(2)
    merged.write(args.output)
    print(f"{args.output}\t{merged.estimate():.2f}")

def cmd_info(args: argparse.Namespace) -> None:
    sketch = load_sketch(args.sketch, args.classic, args.debug)
    print(f"precision\t{sketch.precision}")
    print(f"registers\t{sketch.register_size()}")
    print(f"seed\t{sketch.seed}")
    print(f"estimate\t{sketch.estimate():.2f}")

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    arg_parser = argparse.ArgumentParser(
        description="""Approximate distinct counts of text files with HyperLogLog sketches.

        Every non-empty line of an input file is one element. Sketches use
        HIP (historic inverse probability) estimation unless --classic is given.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = arg_parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--classic", action="store_true", help="Use the classic HyperLogLog estimator instead of HIP")
    common.add_argument("--debug", action="store_true", help="Enable debug mode")

    building = argparse.ArgumentParser(add_help=False)
    building.add_argument("--precision", "-p", type=int, default=14, help="Precision (4-30): the sketch keeps 2**p registers")
    building.add_argument("--seed", type=int, default=42, help="Seed for hashing")

    count_parser = subparsers.add_parser('count', parents=[common, building],
                                         help='Print the estimated distinct count of each file')
    count_parser.add_argument('files', nargs='+', help='Text files to count')
    count_parser.set_defaults(func=cmd_count)

    sketch_parser = subparsers.add_parser('sketch', parents=[common, building],
                                          help='Sketch a file and write the sketch to disk')
    sketch_parser.add_argument('file', help='Text file to sketch')
    sketch_parser.add_argument('--output', '-o', required=True, help='Output sketch file')
    sketch_parser.set_defaults(func=cmd_sketch)

    merge_parser = subparsers.add_parser('merge', parents=[common],
                                         help='Merge persisted sketches into their union')
    merge_parser.add_argument('sketches', nargs='+', help='Sketch files to merge, in order')
    merge_parser.add_argument('--output', '-o', required=True, help='Output sketch file')
    merge_parser.set_defaults(func=cmd_merge)

    info_parser = subparsers.add_parser('info', parents=[common],
                                        help='Describe a persisted sketch')
    info_parser.add_argument('sketch', help='Sketch file')
    info_parser.set_defaults(func=cmd_info)

    args = arg_parser.parse_args(argv)

    if hasattr(args, 'precision') and not MIN_PRECISION <= args.precision <= MAX_PRECISION:
        arg_parser.error(f"bit width must be in the range [{MIN_PRECISION},{MAX_PRECISION}], got {args.precision}")
    if hasattr(args, 'seed') and not 0 <= args.seed < 1 << 64:
        arg_parser.error(f"seed must be an unsigned 64-bit integer, got {args.seed}")

    return args

def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for hiplog."""
    args = parse_args(argv)

    if getattr(args, 'precision', 0) > MAX_RECOMMENDED_PRECISION:
        warnings.warn(f"Precision {args.precision} is above the recommended maximum "
                      f"({MAX_RECOMMENDED_PRECISION}); each sketch allocates 2**{args.precision} registers.",
                      RuntimeWarning)

    args.func(args)

if __name__ == "__main__":
    main()
