"""
Command-line entrypoint.

Usage:
    python -m runmetrics parse activity.fit            # full metrics as JSON
    python -m runmetrics parse run.gpx --summary       # without the sample stream
    python -m runmetrics formats                       # supported formats
    uvicorn runmetrics.api.main:app --port 8000        # HTTP API (needs the serve extra)
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

EXIT_DECODE_ERROR = 1
EXIT_UNSUPPORTED = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="runmetrics", description=__doc__.splitlines()[1])
    parser.add_argument("--log-level", default=None, help="overrides RUNMETRICS_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    parse_cmd = sub.add_parser("parse", help="parse an activity file and print its metrics")
    parse_cmd.add_argument("path", type=Path)
    parse_cmd.add_argument("--summary", action="store_true", help="omit per-sample records")

    sub.add_parser("formats", help="list supported file formats")
    return parser


def _run_parse(path: Path, summary: bool) -> int:
    from runmetrics.config import get_settings
    from runmetrics.parsers import FormatDecodeError, UnsupportedFormatError, parse_activity

    settings = get_settings()
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.error("Cannot read %s: %s", path, exc)
        return EXIT_DECODE_ERROR

    try:
        metrics = parse_activity(
            data,
            path.name,
            lap_distance_km=settings.lap_distance_km,
            elevation_window=settings.elevation_smoothing_window,
            elevation_threshold_m=settings.elevation_threshold_m,
        )
    except UnsupportedFormatError as exc:
        logger.error("%s", exc)
        return EXIT_UNSUPPORTED
    except FormatDecodeError as exc:
        logger.error("%s", exc)
        return EXIT_DECODE_ERROR

    print(json.dumps(metrics.to_dict(include_records=not summary), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    from runmetrics.config import get_settings
    from runmetrics.parsers import supported_formats

    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=(args.log_level or get_settings().log_level).upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    if args.command == "formats":
        print(", ".join(supported_formats()))
        return 0
    return _run_parse(args.path, args.summary)


if __name__ == "__main__":
    sys.exit(main())
