from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Iterable, Sequence

import pathspec

from copydlls.config import ConfigurationError, validate_pattern
from copydlls.exclude_resolver import ExcludeRule, parse_exclude_rules
from copydlls.models import Statistic, SyncReport


# Unity plugin files produced next to each assembly, synced in this order.
TRACKED_EXTENSIONS = ("dll", "pdb", "xml")

logger = logging.getLogger(__name__)


class SyncError(OSError):
    def __init__(self, message: str, *, path: Path, extension: str, phase: str) -> None:
        super().__init__(f"{message} (phase={phase}, extension={extension}, path={path})")
        self.path = path
        self.extension = extension
        self.phase = phase


@dataclass(slots=True)
class SyncOptions:
    dry_run: bool = False


def _compile_glob(glob: str) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitignore", [glob])


def _list_matching_files(directory: Path, spec: pathspec.PathSpec) -> list[Path]:
    # top directory only, nested folders are never synced
    matched = [entry for entry in directory.iterdir() if entry.is_file() and spec.match_file(entry.name)]
    return sorted(matched, key=lambda path: path.name)


def _is_excluded(file_name: str, rules: Sequence[ExcludeRule], extension: str) -> bool:
    return any(rule.matches(file_name, extension) for rule in rules)


def _content_unchanged(data: bytes, destination_file: Path) -> bool:
    if not destination_file.is_file():
        return False
    if destination_file.stat().st_size != len(data):
        return False
    return destination_file.read_bytes() == data


def _safe_write(data: bytes, source_file: Path, destination_file: Path) -> None:
    with tempfile.NamedTemporaryFile(delete=False, dir=str(destination_file.parent)) as tmp:
        tmp_path = Path(tmp.name)
    try:
        tmp_path.write_bytes(data)
        shutil.copymode(source_file, tmp_path)
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _validate_paths(source_root: Path, destination_root: Path) -> None:
    if not source_root.exists() or not source_root.is_dir():
        raise ConfigurationError(f"Source directory does not exist or is not a directory: {source_root}")

    if source_root.resolve() == destination_root.resolve():
        raise ConfigurationError(f"Invalid mapping: source and destination are equal: {source_root}")


def _filter_candidates(
    candidates: list[Path],
    rules: Sequence[ExcludeRule],
    extension: str,
    stats: Statistic,
) -> list[Path]:
    survivors: list[Path] = []
    for candidate in candidates:
        if _is_excluded(candidate.name, rules, extension):
            logger.debug("Skipping copy of %s: matched an exclude", candidate.name)
            stats.skipped += 1
            continue
        survivors.append(candidate)
    return survivors


def _copy_phase(
    source_files: list[Path],
    destination_root: Path,
    extension: str,
    stats: Statistic,
    options: SyncOptions,
) -> set[str]:
    kept_names: set[str] = set()
    for source_file in source_files:
        destination_file = destination_root / source_file.name
        kept_names.add(source_file.name)
        try:
            data = source_file.read_bytes()
            if _content_unchanged(data, destination_file):
                logger.debug("Skipping copy of %s: binary not changed", source_file.name)
                stats.skipped += 1
                continue

            if not options.dry_run:
                _safe_write(data, source_file, destination_file)
        except OSError as exc:
            raise SyncError(str(exc), path=source_file, extension=extension, phase="copy") from exc
        logger.debug("Copied %s", source_file.name)
        stats.copied += 1
    return kept_names


def _prune_phase(
    destination_root: Path,
    kept_names: set[str],
    extension: str,
    stats: Statistic,
    options: SyncOptions,
) -> None:
    if not destination_root.is_dir():
        return

    try:
        destination_files = _list_matching_files(destination_root, _compile_glob(f"*.{extension}"))
    except OSError as exc:
        raise SyncError(str(exc), path=destination_root, extension=extension, phase="prune") from exc

    for garbage_file in destination_files:
        if garbage_file.name in kept_names:
            continue
        if options.dry_run:
            stats.deleted += 1
            continue
        try:
            garbage_file.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise SyncError(str(exc), path=garbage_file, extension=extension, phase="prune") from exc
        logger.debug("Pruned %s: no longer produced by the build", garbage_file.name)
        stats.deleted += 1


def sync(
    source: Path,
    destination: Path,
    pattern: str,
    excludes: Iterable[str | ExcludeRule],
    options: SyncOptions | None = None,
    extensions: Sequence[str] = TRACKED_EXTENSIONS,
) -> SyncReport:
    """Copy build outputs matching ``{pattern}.{ext}`` from source into destination.

    Unchanged files are left alone so their timestamps stay stable, and
    destination files of a tracked extension that the source no longer
    provides are deleted. An extension with no source candidates at all is
    skipped entirely, including its prune step.
    """
    options = options or SyncOptions()
    source_root = Path(source)
    destination_root = Path(destination)

    _validate_paths(source_root, destination_root)
    validate_pattern(pattern)
    try:
        rules = parse_exclude_rules(excludes)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    report = SyncReport(statistics={extension: Statistic(name=extension) for extension in extensions})

    if not options.dry_run and not destination_root.exists():
        logger.debug("Creating destination directory %s", destination_root)
        try:
            destination_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SyncError(str(exc), path=destination_root, extension="*", phase="prepare") from exc

    for extension in extensions:
        stats = report.statistics[extension]
        logger.debug("Begin sync for extension %s from %s", extension, source_root)

        try:
            candidates = _list_matching_files(source_root, _compile_glob(f"{pattern}.{extension}"))
        except OSError as exc:
            raise SyncError(str(exc), path=source_root, extension=extension, phase="scan") from exc

        if not candidates:
            # a missing build step must never wipe what an earlier build delivered
            logger.debug("No source files for extension %s, skipping", extension)
            report.skipped_extensions.append(extension)
            continue

        source_files = _filter_candidates(candidates, rules, extension, stats)
        kept_names = _copy_phase(source_files, destination_root, extension, stats, options)
        _prune_phase(destination_root, kept_names, extension, stats, options)

        logger.debug("[%s] %s", extension, stats.progress_message())

    logger.info("Sync completed: %s", report.merged.progress_message())
    return report
