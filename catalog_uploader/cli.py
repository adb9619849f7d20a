"""Command line interface for catalog_uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    RunStatusDisplay,
    render_configuration_summary,
    render_run_summary,
)
from .config import UploaderConfig, load_config
from .errors import ConfigurationError
from .orchestrator import UploadOrchestrator
from .services.remote_index import StaticIndexSource


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_ENV_FILE = Path(".env")


def _requested_log_level(debug: bool, silent: bool, log_level: Optional[str]) -> Optional[int]:
    """Level asked for by flags or LOG_LEVEL; None means stay silent."""
    if silent:
        return None
    if debug:
        return logging.DEBUG
    name = log_level or os.getenv(LOG_LEVEL_ENV)
    if not name:
        return None
    return getattr(logging, name.upper(), logging.INFO)


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Route log records to the console through a RichHandler.

    Nothing is logged unless --debug, --log-level or LOG_LEVEL asks for it,
    so the live status view owns the terminal by default. Returns the
    effective mode for the configuration summary.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    level = _requested_log_level(debug, silent, log_level)
    if level is None:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    logging.disable(logging.NOTSET)
    handler = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # one line per upload request otherwise
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _parse_env_assignment(line: str) -> Optional[Tuple[str, str]]:
    """``KEY=value`` from one .env line, None for blanks, comments and junk."""
    line = line.strip()
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key or key.startswith("#"):
        return None

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key, value


def _load_env_file(path: Path, override: bool = False) -> int:
    """
    Export the assignments of a .env file (credentials, API URLs).

    Variables already set in the environment win unless override is set.
    Returns how many variables were exported.
    """
    if not path.is_file():
        reason = "env path is not a file" if path.exists() else "env file not found"
        raise CLIError(f"{reason}: {path}")
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    exported = 0
    for line in lines:
        assignment = _parse_env_assignment(line)
        if assignment is None:
            continue
        key, value = assignment
        if override or key not in os.environ:
            os.environ[key] = value
            exported += 1
    return exported


def _resolve_config(args: argparse.Namespace) -> UploaderConfig:
    config = load_config(args.config)
    return config.with_overrides(
        root=args.root,
        concurrency=args.concurrency,
        snapshot_path=args.snapshot,
    )


async def _run_upload(config: UploaderConfig, use_index: bool, show_status: bool) -> int:
    index_source = None if use_index else StaticIndexSource()

    async with UploadOrchestrator(config, index_source=index_source) as orchestrator:
        display = RunStatusDisplay(orchestrator.tracker) if show_status else None
        if display:
            display.start()
        try:
            summary = await orchestrator.run()
        finally:
            if display:
                await display.stop()

    render_run_summary(summary)
    return 0 if summary.all_success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-uploader",
        description="Upload new media files below a root folder to the media catalog.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        required=True,
        help="Path to config YAML (accepted_users, number_of_threads, ...)",
    )
    parser.add_argument(
        "-r",
        "--root",
        type=Path,
        default=None,
        help="Root folder to scan (default from ROOT_FOLDER)",
    )
    parser.add_argument(
        "-n",
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of files processed at once (overrides number_of_threads)",
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        default=None,
        help="Tree snapshot file used to prioritize new files (default: ./tree.json)",
    )
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Do not query the remote index; every intact file is uploaded",
    )
    parser.add_argument(
        "--no-status",
        action="store_true",
        help="Disable the live status view",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"catalog-uploader {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # an explicit --env-file must exist, the default .env is optional
    used_env_file = args.env_file
    if used_env_file is None and DEFAULT_ENV_FILE.is_file():
        used_env_file = DEFAULT_ENV_FILE
    if used_env_file is not None:
        try:
            _load_env_file(used_env_file)
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    try:
        config = _resolve_config(args)
        config.validate_for_run(use_index=not args.no_index)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.no_index:
        print("WARNING: running without remote index (--no-index).", file=sys.stderr)

    render_configuration_summary(
        {
            "Root": str(config.root),
            "Accepted Users": ", ".join(config.accepted_users) or "-",
            "Concurrency": config.concurrency,
            "Upload API": config.api_url,
            "Datastore API": "(disabled)" if args.no_index else config.datastore_api_url,
            "Snapshot": str(config.snapshot_path),
            "Integrity Check": " ".join(config.integrity_command),
            "Verify TLS": "yes" if config.verify_tls else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                config,
                use_index=not args.no_index,
                show_status=not args.no_status,
            )
        )
    except (CLIError, ConfigurationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
