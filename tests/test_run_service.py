from pathlib import Path
import json

from copydlls.run_service import EXIT_INVALID_CONFIG, EXIT_SUCCESS, run_copy


BUILD_OUTPUTS = [
    "Class1.dll",
    "Class1.pdb",
    "ConsoleApp.dll",
    "ConsoleApp.pdb",
    "System.Memory.dll",
    "UnityEngine.dll",
    "Shared.dll",
]


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _write_settings(project_dir: Path, **overrides) -> None:
    payload = {
        "destination": "../Unity/Assets/Plugins/Dlls",
        "pattern": "*",
        "excludes": ["UnityEngine", "UnityEditor"],
        "exclude_folders": ["../Unity/Assets/Plugins/Shared"],
    }
    payload.update(overrides)
    _write(project_dir / "CopySettings.json", json.dumps(payload))


def test_run_copy_applies_excludes_and_exclude_folders(tmp_path: Path) -> None:
    project_dir = tmp_path / "sln" / "project"
    target_dir = project_dir / "bin" / "Debug" / "net8.0"
    for name in BUILD_OUTPUTS:
        _write(target_dir / name, name)
    _write(tmp_path / "sln" / "Unity" / "Assets" / "Plugins" / "Shared" / "Shared.dll", "")
    _write(tmp_path / "sln" / "Unity" / "Assets" / "Plugins" / "Shared" / "Shared.dll.meta", "")
    _write_settings(project_dir)

    exit_code, report = run_copy(project_dir=project_dir, target_dir=target_dir)

    destination = tmp_path / "sln" / "Unity" / "Assets" / "Plugins" / "Dlls"
    assert exit_code == EXIT_SUCCESS
    assert report is not None
    assert sorted(entry.name for entry in destination.iterdir()) == [
        "Class1.dll",
        "Class1.pdb",
        "ConsoleApp.dll",
        "ConsoleApp.pdb",
        "System.Memory.dll",
    ]
    assert report.for_extension("dll").copied == 3
    assert report.for_extension("dll").skipped == 2
    assert report.merged.copied == 5


def test_run_copy_with_invalid_settings_returns_invalid_config(tmp_path: Path) -> None:
    project_dir = tmp_path / "project"
    _write(project_dir / "CopySettings.json", json.dumps({"pattern": "*"}))

    exit_code, report = run_copy(project_dir=project_dir, target_dir=tmp_path / "bin")

    assert exit_code == EXIT_INVALID_CONFIG
    assert report is None


def test_run_copy_with_missing_target_dir_returns_invalid_config(tmp_path: Path) -> None:
    project_dir = tmp_path / "project"
    _write_settings(project_dir, exclude_folders=[])

    exit_code, report = run_copy(project_dir=project_dir, target_dir=tmp_path / "missing-bin")

    assert exit_code == EXIT_INVALID_CONFIG
    assert report is None
