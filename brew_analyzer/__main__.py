"""Command line entry point for the Brew Analyzer project."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

from . import AnalysisRequest, AppConfig, BrewAnalyzer
from .config import CONFIG_FILE_ENV
from .errors import BrewAnalysisError
from .models.registry import ModelRegistry


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Brew Analyzer")
    parser.add_argument(
        "--photo-key",
        "-k",
        help="Storage key of the uploaded brew photo.",
    )
    parser.add_argument(
        "--brew-method",
        "-m",
        help="Brewing technique shown in the photo, e.g. espresso or pour-over.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML or JSON configuration file applied before environment overrides.",
    )
    parser.add_argument(
        "--backend",
        help="Override the configured model backend.",
    )
    parser.add_argument(
        "--model-id",
        help="Override the configured model identifier.",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print available model backends and exit.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.list_models:
        payload = [asdict(info) for info in ModelRegistry.list_model_infos()]
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    if not args.photo_key or not args.brew_method:
        parser.error("--photo-key and --brew-method are required.")

    environ = dict(os.environ)
    if args.config:
        environ[CONFIG_FILE_ENV] = str(args.config)
    try:
        config = AppConfig.from_env(environ)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(f"Invalid configuration: {exc}")

    overrides = {}
    if args.backend:
        overrides["model_backend"] = args.backend
    if args.model_id:
        overrides["model_id"] = args.model_id
    if overrides:
        config = AppConfig.model_validate({**config.as_dict(), **overrides})

    analyzer = BrewAnalyzer(config)
    request = AnalysisRequest(photo_key=args.photo_key, brew_method=args.brew_method)
    try:
        result = analyzer.analyze(request)
    except BrewAnalysisError as exc:
        json.dump({"error": exc.kind, "message": str(exc)}, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 1

    json.dump(result.as_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
