from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, Sequence


# Trailing marker on an exclude name that switches it from prefix to exact match.
EXACT_MATCH_MARKER = "$"
# Unity writes a sidecar .meta file next to every asset.
META_EXTENSION = ".meta"

logger = logging.getLogger(__name__)


class MatchMode(Enum):
    PREFIX = "prefix"
    EXACT = "exact"


@dataclass(frozen=True, slots=True)
class ExcludeRule:
    pattern: str
    mode: MatchMode = MatchMode.PREFIX

    def matches(self, file_name: str, extension: str) -> bool:
        """Check a source file name (extension included) against this rule.

        Exact rules carry no extension, the extension being synced is appended
        before comparing.
        """
        if self.mode is MatchMode.EXACT:
            return file_name == f"{self.pattern}.{extension}"
        return file_name.startswith(self.pattern)

    def __str__(self) -> str:
        if self.mode is MatchMode.EXACT:
            return f"{self.pattern}{EXACT_MATCH_MARKER}"
        return self.pattern


def _has_separator(value: str) -> bool:
    return "/" in value or "\\" in value


def parse_exclude_rule(raw: str | ExcludeRule) -> ExcludeRule:
    if isinstance(raw, ExcludeRule):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"Exclude entry must be a non-empty string: {raw!r}")
    if _has_separator(raw):
        raise ValueError(f"Exclude entry must be a file name, not a path: {raw}")

    if raw.endswith(EXACT_MATCH_MARKER):
        pattern = raw[: -len(EXACT_MATCH_MARKER)]
        if not pattern:
            raise ValueError(f"Exact exclude entry has no file name: {raw}")
        return ExcludeRule(pattern=pattern, mode=MatchMode.EXACT)
    return ExcludeRule(pattern=raw, mode=MatchMode.PREFIX)


def parse_exclude_rules(raw_items: Iterable[str | ExcludeRule]) -> list[ExcludeRule]:
    return [parse_exclude_rule(raw) for raw in raw_items]


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _folder_exclude_names(folder: Path) -> list[str]:
    names: list[str] = []
    # direct children only
    for entry in sorted(folder.iterdir(), key=lambda path: path.name):
        if not entry.is_file():
            continue
        if entry.suffix == META_EXTENSION:
            continue
        logger.debug("Exclude file found in exclude folder: %s", entry)
        names.append(f"{entry.stem}{EXACT_MATCH_MARKER}")
    return names


def resolve_excludes(
    excludes: Sequence[str],
    exclude_folders: Sequence[str | Path],
    base_dir: Path,
) -> list[str]:
    """Merge configured excludes with the file names found in exclude folders.

    Every file directly inside an exclude folder becomes an exact-match entry
    named after the file without its extension. Folders are resolved against
    ``base_dir`` and silently ignored when missing. Without exclude folders the
    configured excludes are returned as they are.
    """
    if not exclude_folders:
        logger.debug("No exclude folders configured, using excludes only")
        return list(excludes)

    from_folders: list[str] = []
    for raw_folder in exclude_folders:
        folder = base_dir / Path(raw_folder)
        if not folder.is_dir():
            logger.debug("Exclude folder not found, skipping: %s", folder)
            continue
        logger.debug("Enumerating exclude files from folder: %s", folder)
        from_folders.extend(_folder_exclude_names(folder))

    return _dedupe([*excludes, *_dedupe(from_folders)])
