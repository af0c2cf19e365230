"""
Run the validation suite against a live FeatureServer.

    python -m service_validator --url https://.../FeatureServer --layer-id 12
    python -m service_validator --json

Exit status is 0 when every check passed and 1 otherwise.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

from arcgis_features import FeatureClient
from util_logger import LoggerFactory, LogLevel

from .config import ValidationExpectations
from .runner import format_summary, run_validation_suite

DEFAULT_SERVICE_URL = (
    "https://services1.arcgis.com/UN4R3TyArTjDlnhb/arcgis/rest/services/"
    "Permian_CCN_External_Open_House/FeatureServer"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m service_validator",
        description="Validate an ArcGIS FeatureServer through the feature client"
    )
    parser.add_argument(
        "--url",
        default=os.getenv("ARCGIS_SERVICE_URL", DEFAULT_SERVICE_URL),
        help="FeatureServer base URL (default: $ARCGIS_SERVICE_URL)"
    )
    parser.add_argument("--layer-id", type=int, default=None, help="Layer to validate")
    parser.add_argument("--layer-name", default=None, help="Expected layer name")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Print the suite as JSON")
    parser.add_argument("--verbose", action="store_true", help="Keep INFO logs on stdout")
    return parser


async def _run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.layer_id is not None:
        overrides["layer_id"] = args.layer_id
    if args.layer_name is not None:
        overrides["layer_name"] = args.layer_name
    expectations = ValidationExpectations(**overrides)

    async with FeatureClient(args.url, timeout=args.timeout) as client:
        suite = await run_validation_suite(client, expectations)

    if args.json:
        print(json.dumps(suite.to_dict(), indent=2))
    else:
        print(format_summary(suite))

    return 0 if suite.all_passed else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.json:
        LoggerFactory.set_level(LogLevel.CRITICAL)
    elif not args.verbose:
        LoggerFactory.set_level(LogLevel.WARNING)

    try:
        return asyncio.run(_run(args))
    except ValueError as e:
        # InvalidArgumentError for the URL, ValidationError for bad expectations
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
