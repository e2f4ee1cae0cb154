from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from copydlls.config import DEFAULT_SETTINGS_FILE, ConfigurationError, load_settings, resolve_destination, write_template
from copydlls.models import SyncReport
from copydlls.run_service import EXIT_INVALID_CONFIG, EXIT_RUNTIME_OR_CONFIG_ERROR, EXIT_SUCCESS, run_copy


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="copydlls", description="Copy build output DLLs into a Unity project")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every copied, skipped and pruned file")
    parser.add_argument("--log-file", type=Path, default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Write a settings template into the project directory")
    init_parser.add_argument("--project-dir", type=Path, default=Path.cwd())
    init_parser.add_argument("--settings", default=DEFAULT_SETTINGS_FILE)
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing settings file")

    validate_parser = subparsers.add_parser("validate", help="Validate the settings file")
    validate_parser.add_argument("--project-dir", type=Path, default=Path.cwd())
    validate_parser.add_argument("--settings", default=DEFAULT_SETTINGS_FILE)

    run_parser = subparsers.add_parser("run", help="Copy build outputs into the destination")
    run_parser.add_argument("--project-dir", type=Path, default=Path.cwd())
    run_parser.add_argument("--target-dir", required=True, type=Path, help="Build output directory")
    run_parser.add_argument("--settings", default=DEFAULT_SETTINGS_FILE)
    run_parser.add_argument("--dry-run", action="store_true")

    return parser


def _configure_logging(verbose: bool, log_file: Path | None) -> logging.Logger:
    logger = logging.getLogger("copydlls")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


def _print_report(report: SyncReport, dry_run: bool) -> None:
    prefix = "[dry-run] " if dry_run else ""
    for extension, stats in report.statistics.items():
        note = " (no source files)" if extension in report.skipped_extensions else ""
        print(f"{prefix}[{extension}] {stats.progress_message()}{note}")
    print(f"{prefix}[total] {report.merged.progress_message()}")


def cmd_init(project_dir: Path, settings_file: str, force: bool) -> int:
    try:
        settings_path = write_template(project_dir, settings_file, force=force)
    except ConfigurationError as exc:
        print(f"Init failed: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR

    print(f"Settings template written: {settings_path}")
    return EXIT_SUCCESS


def cmd_validate(project_dir: Path, settings_file: str) -> int:
    settings_path = project_dir / settings_file
    try:
        settings = load_settings(settings_path)
    except ConfigurationError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid settings: {settings_path}")
    print(f"  destination={resolve_destination(project_dir, settings)}")
    print(f"  pattern={settings.pattern}")
    print(f"  excludes={len(settings.excludes)} exclude_folders={len(settings.exclude_folders)}")
    return EXIT_SUCCESS


def cmd_run(
    project_dir: Path,
    target_dir: Path,
    settings_file: str,
    dry_run: bool,
    logger: logging.Logger,
) -> int:
    exit_code, report = run_copy(
        project_dir=project_dir,
        target_dir=target_dir,
        settings_file=settings_file,
        dry_run=dry_run,
        logger=logger.getChild("run"),
    )
    if report is None:
        print(f"Copy failed for target {target_dir}, see log output", file=sys.stderr)
        return exit_code

    _print_report(report, dry_run)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logger = _configure_logging(args.verbose, args.log_file)

    if args.command == "init":
        return cmd_init(args.project_dir, args.settings, args.force)
    if args.command == "validate":
        return cmd_validate(args.project_dir, args.settings)
    if args.command == "run":
        return cmd_run(
            project_dir=args.project_dir,
            target_dir=args.target_dir,
            settings_file=args.settings,
            dry_run=args.dry_run,
            logger=logger,
        )

    parser.print_help()
    return EXIT_RUNTIME_OR_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
