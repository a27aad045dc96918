"""
Command-line entry point: one sub-command per registered modifier.

    beat-dropper [--workers N] [--raw] pattern song.flac --bpm 120 --pattern 10 -o out.wav
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from logging_config import get_logger, set_debug

from . import __version__
from .codec import probe_format
from .errors import BeatDropError, ConfigurationError
from .modifiers import ModifierOptions, available_modifiers, format_available_for_cli, get_factory
from .pipeline import PipelineConfig, process_file

logger = get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

OPTION_TYPES = {
    "bpm": int,
    "measure_size": int,
    "pattern": str,
    "percentage": float,
    "seed": str,
    "sample_size": int,
    "stretch_factor": float,
}


def option_flag(name: str) -> str:
    return "--" + name.replace("_", "-")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beat-dropper",
        description="Beat Dropper - Drop, reverse, swap and stretch the beats of a song",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--list", action="store_true", help="List available modifiers and exit")
    parser.add_argument("--workers", "-w", type=int, default=None,
                        help="Number of parallel batch workers (default: cores + 8, max 64)")
    parser.add_argument("--queue-depth", type=int, default=32,
                        help="Batches read ahead of the writer (default: 32)")
    parser.add_argument("--sample-rate", type=int, default=None,
                        help="Resample the input to this rate before processing")
    parser.add_argument("--raw", action="store_true",
                        help="Write an uncompressed AU container")
    parser.add_argument("--container", default=None,
                        help="Output container, e.g. WAV or FLAC (default: from the extension)")
    parser.add_argument("--debug", action="store_true", help="Verbose per-batch logging")

    subparsers = parser.add_subparsers(dest="modifier", metavar="MODIFIER")
    for modifier_id in available_modifiers():
        factory = get_factory(modifier_id)
        sub = subparsers.add_parser(modifier_id, help=factory.description, description=factory.description)
        sub.add_argument("input_file", help="Input audio file")
        sub.add_argument("--output", "-o", help="Output file path")
        for name in factory.options:
            sub.add_argument(
                option_flag(name),
                dest=name,
                type=OPTION_TYPES[name],
                required=name in factory.required,
                help=factory.help_for(name),
            )
    return parser


def default_output_path(input_path: Path, modifier_id: str, raw: bool) -> Path:
    suffix = ".au" if raw else ".wav"
    return input_path.with_name(f"{input_path.stem}_{modifier_id}{suffix}")


def run(args: argparse.Namespace) -> int:
    factory = get_factory(args.modifier)
    options = ModifierOptions(**{name: getattr(args, name) for name in factory.options})
    config = PipelineConfig(max_workers=args.workers, max_pending_batches=args.queue_depth)

    input_path = Path(args.input_file)
    output_path = Path(args.output) if args.output else default_output_path(input_path, args.modifier, args.raw)

    fmt = probe_format(input_path, args.sample_rate)
    modifier = factory.create(fmt, options)

    stats = process_file(
        modifier, str(input_path), str(output_path),
        config=config, sample_rate=args.sample_rate,
        raw=args.raw, container=args.container,
    )

    print("\n" + "=" * 60)
    print("BEAT DROP SUMMARY")
    print("=" * 60)
    print(f"Modifier: {modifier.describe()}")
    print(f"Input:    {input_path}")
    print(f"Output:   {output_path}")
    for key, value in stats.to_dict().items():
        print(f"  {key}: {value}")
    print("=" * 60)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        print("Available modifiers:")
        print(format_available_for_cli())
        return EXIT_OK
    if not args.modifier:
        parser.print_usage(sys.stderr)
        print("error: a modifier is required (see --list)", file=sys.stderr)
        return EXIT_USAGE

    set_debug(args.debug)

    try:
        return run(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_USAGE
    except BeatDropError as e:
        logger.error(f"Run failed: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
