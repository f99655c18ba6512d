# pylint: disable=import-outside-toplevel
"""Main entry point for the trackmetrics CLI.

A developer tool for checking what the parser makes of an activity file:
prints the derived metrics as JSON.
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()


def run_parse(file_path: str, file_format: str | None = None, include_track: bool = False) -> int:
    """Parse *file_path* and print its metrics; return the process exit code."""
    from trackmetrics.appconfig import load_config
    from trackmetrics.errors import WorkoutParseError
    from trackmetrics.file_format import parse_file

    config = load_config()
    if config.get("debug", False):
        logging.basicConfig(level=logging.DEBUG)

    try:
        metrics = parse_file(file_path, file_format, config)
    except WorkoutParseError as e:
        print(f"Error parsing {file_path}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Could not read {file_path}: {e}", file=sys.stderr)
        return 1

    print(json.dumps(metrics.to_dict(include_track=include_track), indent=2))
    return 0


def main(argv=None):
    """Main function for the trackmetrics CLI."""
    parser = argparse.ArgumentParser(description="trackmetrics CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_parser = subparsers.add_parser("parse", help="Parse a GPX or FIT file and print its metrics")
    parse_parser.add_argument("file", type=str, help="Path to a .gpx, .fit, .gpx.gz or .fit.gz file")
    parse_parser.add_argument(
        "--format",
        dest="file_format",
        help="Declared file format (gpx or fit); detected from the file when omitted",
    )
    parse_parser.add_argument("--track", action="store_true", help="Include the full GPS track in the output")
    subparsers.add_parser("help", help="Show usage and documentation")

    args = parser.parse_args(argv)

    if args.command == "parse":
        return run_parse(args.file, args.file_format, args.track)
    if args.command == "help":
        print(
            """
trackmetrics - Turn GPX and FIT workout recordings into normalized metrics.

Usage:
    python -m trackmetrics <command>

Commands:
    parse FILE    Parse FILE and print distance, duration, pace, elevation
                  gain and heart-rate/cadence statistics as JSON
                  --format gpx|fit   override format detection
                  --track            include the full GPS track
    help          Show this help and usage documentation

Configuration:
    Optional trackmetrics_config.json (or the path in TRACKMETRICS_CONFIG,
    which may be set in a .env file) with keys: debug, strict_crc,
    extension_fields.
"""
        )
        return 0
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
