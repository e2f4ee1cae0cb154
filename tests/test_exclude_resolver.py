from pathlib import Path

import pytest

from copydlls.exclude_resolver import (
    ExcludeRule,
    MatchMode,
    parse_exclude_rule,
    parse_exclude_rules,
    resolve_excludes,
)


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")


def test_resolve_without_folders_returns_excludes_unchanged(tmp_path: Path) -> None:
    excludes = ["UnityEngine", "UnityEngine", "Foo$"]

    resolved = resolve_excludes(excludes, [], base_dir=tmp_path)

    assert resolved == ["UnityEngine", "UnityEngine", "Foo$"]


def test_resolve_adds_exact_names_from_folder_files(tmp_path: Path) -> None:
    folder = tmp_path / "Assets" / "Plugins" / "Shared"
    _touch(folder / "Newtonsoft.Json.dll")
    _touch(folder / "Newtonsoft.Json.dll.meta")
    _touch(folder / "Newtonsoft.Json.xml")
    _touch(folder / "nested" / "Deep.dll")

    resolved = resolve_excludes(["UnityEngine"], ["Assets/Plugins/Shared"], base_dir=tmp_path)

    assert resolved == ["UnityEngine", "Newtonsoft.Json$"]


def test_resolve_dedupes_preserving_first_occurrence(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _touch(first / "A.dll")
    _touch(first / "B.dll")
    _touch(second / "A.dll")

    resolved = resolve_excludes(["B$", "UnityEditor", "B$"], ["first", "second"], base_dir=tmp_path)

    assert resolved == ["B$", "UnityEditor", "A$"]


def test_resolve_skips_missing_folders(tmp_path: Path) -> None:
    resolved = resolve_excludes(["UnityEngine"], ["does-not-exist"], base_dir=tmp_path)

    assert resolved == ["UnityEngine"]


def test_parse_rule_distinguishes_exact_and_prefix() -> None:
    assert parse_exclude_rule("Foo$") == ExcludeRule("Foo", MatchMode.EXACT)
    assert parse_exclude_rule("Foo") == ExcludeRule("Foo", MatchMode.PREFIX)


def test_exact_rule_appends_extension_before_comparing() -> None:
    rule = parse_exclude_rule("Foo$")

    assert rule.matches("Foo.dll", "dll")
    assert rule.matches("Foo.pdb", "pdb")
    assert not rule.matches("FooBar.dll", "dll")
    assert not rule.matches("Foo.dll", "pdb")


def test_prefix_rule_matches_full_file_name_start() -> None:
    rule = parse_exclude_rule("Unity")

    assert rule.matches("Unity.dll", "dll")
    assert rule.matches("UnityEngine.UI.dll", "dll")
    assert not rule.matches("MyUnity.dll", "dll")


def test_rule_str_round_trips_marker() -> None:
    assert [str(rule) for rule in parse_exclude_rules(["Foo$", "Bar"])] == ["Foo$", "Bar"]


@pytest.mark.parametrize("raw", ["", "  ", "$", "sub/Foo", "sub\\Foo"])
def test_parse_rule_rejects_invalid_entries(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_exclude_rule(raw)
