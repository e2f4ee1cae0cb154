from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml

from copydlls.exclude_resolver import parse_exclude_rule


DEFAULT_SETTINGS_FILE = "CopySettings.json"

# gitignore-style globs give these a meaning of their own at the start of a line.
RESERVED_PATTERN_PREFIXES = ("!", "#")

DEFAULT_EXCLUDES = [
    "UnityEngine",
    "UnityEditor",
]


class ConfigurationError(ValueError):
    pass


@dataclass(slots=True)
class CopySettings:
    destination: Path
    pattern: str = "*"
    excludes: list[str] = field(default_factory=list)
    exclude_folders: list[Path] = field(default_factory=list)


def _has_separator(value: str) -> bool:
    return "/" in value or "\\" in value


def _as_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{field_name} must be a non-empty string path")
    return Path(value).expanduser()


def _as_file_name(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{field_name} must be a non-empty string")
    if _has_separator(value):
        raise ConfigurationError(f"{field_name} must be a file name pattern, not a path: {value}")
    return value


def validate_pattern(pattern: Any, field_name: str = "pattern") -> str:
    pattern = _as_file_name(pattern, field_name)
    if pattern.startswith(RESERVED_PATTERN_PREFIXES):
        raise ConfigurationError(f"{field_name} must not start with '!' or '#': {pattern}")
    return pattern


def _as_list_of_strings(value: Any, field_name: str, default: list[str] | None = None) -> list[str]:
    if value is None:
        return list(default or [])
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ConfigurationError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_settings(settings_path: Path) -> dict[str, Any]:
    if not settings_path.exists():
        raise ConfigurationError(f"Settings file does not exist: {settings_path}")

    suffix = settings_path.suffix.lower()
    text = settings_path.read_text(encoding="utf-8-sig")
    try:
        if suffix in {".yml", ".yaml"}:
            loaded = yaml.safe_load(text)
        elif suffix == ".json":
            loaded = json.loads(text)
        else:
            raise ConfigurationError("Settings file must be .json or .yaml/.yml")
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Settings file is not well formed: {settings_path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError("Settings root must be an object")
    return loaded


def load_settings(settings_path: Path) -> CopySettings:
    raw = _load_raw_settings(settings_path)

    destination = _as_path(raw.get("destination"), "destination")
    pattern = validate_pattern(raw.get("pattern"))

    excludes = _as_list_of_strings(raw.get("excludes"), "excludes", default=[])
    for index, exclude in enumerate(excludes):
        _as_file_name(exclude, f"excludes[{index}]")
        try:
            parse_exclude_rule(exclude)
        except ValueError as exc:
            raise ConfigurationError(f"excludes[{index}] is not a valid exclude: {exc}") from exc

    exclude_folders = [
        Path(folder)
        for folder in _as_list_of_strings(raw.get("exclude_folders"), "exclude_folders", default=[])
    ]

    return CopySettings(
        destination=destination,
        pattern=pattern,
        excludes=excludes,
        exclude_folders=exclude_folders,
    )


def template_settings() -> dict[str, Any]:
    return {
        "destination": "../Assets/Plugins/Dlls",
        "pattern": "*",
        "excludes": list(DEFAULT_EXCLUDES),
        "exclude_folders": [],
    }


def write_template(project_dir: Path, file_name: str = DEFAULT_SETTINGS_FILE, force: bool = False) -> Path:
    settings_path = project_dir / file_name
    if settings_path.exists() and not force:
        raise ConfigurationError(f"Settings file already exists: {settings_path}")

    project_dir.mkdir(parents=True, exist_ok=True)
    if settings_path.suffix.lower() in {".yml", ".yaml"}:
        text = yaml.safe_dump(template_settings(), sort_keys=False)
    else:
        text = json.dumps(template_settings(), indent=2) + "\n"
    settings_path.write_text(text, encoding="utf-8")
    return settings_path


def resolve_destination(project_dir: Path, settings: CopySettings) -> Path:
    if settings.destination.is_absolute():
        return settings.destination
    return project_dir / settings.destination
