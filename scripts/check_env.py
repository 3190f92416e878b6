"""Preflight check for the chart analyzer's configuration.

Loads ``AppSettings`` from the given ``.env`` file, loads the candlestick
pattern taxonomy the reasoning stage will embed in its prompt, and prints the
resolved upstream configuration with secrets masked.

Example::

    python -m scripts.check_env --env-file /opt/chart-analyzer/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file
from app.schemas import Pattern
from app.services.taxonomy import load_patterns

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5


class PreflightError(RuntimeError):
    """Configuration loads but the service still could not start."""


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"


def _load_settings(env_file: Path) -> AppSettings:
    if not env_file.is_file():
        raise PreflightError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _load_taxonomy(settings: AppSettings) -> list[Pattern]:
    path = settings.patterns_path
    if not path.is_file():
        raise PreflightError(
            f"Pattern taxonomy {path} does not exist. "
            "Set PATTERNS_PATH to the candlestick pattern CSV."
        )
    patterns = load_patterns(path)
    if not patterns:
        raise PreflightError(f"Pattern taxonomy {path} has no usable rows.")
    return patterns


def _report(settings: AppSettings, patterns: list[Pattern]) -> None:
    replicate = settings.replicate
    deepseek = settings.deepseek
    polling = settings.polling
    print(f"Environment: {settings.environment} (log level {settings.log_level})")
    print(
        f"Replicate:   {replicate.base_url} version {replicate.model_version[:12]} "
        f"token {_mask(replicate.api_token)}"
    )
    print(
        f"DeepSeek:    {deepseek.base_url} model {deepseek.model_name} "
        f"key {_mask(deepseek.api_key)}"
    )
    print(
        f"Polling:     every {polling.interval_seconds}s, "
        f"vision {polling.vision_max_attempts} / warmup {polling.warmup_max_attempts} attempts, "
        f"worst case {polling.interval_seconds * polling.warmup_max_attempts:.0f}s warmup"
    )
    categories = sorted({pattern.category for pattern in patterns})
    print(f"Taxonomy:    {settings.patterns_path} ({len(patterns)} patterns; {', '.join(categories)})")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to the .env file to validate (default: ./.env).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = _load_settings(args.env_file)
        patterns = _load_taxonomy(settings)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except PreflightError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _report(settings, patterns)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
