from __future__ import annotations

from pathlib import Path
import logging

from copydlls.config import DEFAULT_SETTINGS_FILE, ConfigurationError, load_settings, resolve_destination
from copydlls.exclude_resolver import resolve_excludes
from copydlls.models import SyncReport
from copydlls.sync_engine import SyncOptions, sync


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_INVALID_CONFIG = 3


def run_copy(
    project_dir: Path,
    target_dir: Path,
    settings_file: str = DEFAULT_SETTINGS_FILE,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[int, SyncReport | None]:
    log = logger or logging.getLogger("copydlls.run")
    project_dir = project_dir.resolve()

    try:
        settings = load_settings(project_dir / settings_file)
    except ConfigurationError as exc:
        log.error("Invalid settings: %s", exc)
        return EXIT_INVALID_CONFIG, None

    destination = resolve_destination(project_dir, settings)

    try:
        excludes = resolve_excludes(settings.excludes, settings.exclude_folders, base_dir=project_dir)
        log.info("Copy DLLs %s -> %s (pattern=%s, excludes=%s)", target_dir, destination, settings.pattern, len(excludes))
        report = sync(
            source=target_dir,
            destination=destination,
            pattern=settings.pattern,
            excludes=excludes,
            options=SyncOptions(dry_run=dry_run),
        )
    except ConfigurationError as exc:
        log.error("Invalid settings: %s", exc)
        return EXIT_INVALID_CONFIG, None
    except OSError as exc:
        log.error("Copy failed: %s", exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, None

    for extension, stats in report.statistics.items():
        log.info("[%s] %s", extension, stats.progress_message())
    log.info("[total] %s", report.merged.progress_message())
    return EXIT_SUCCESS, report
