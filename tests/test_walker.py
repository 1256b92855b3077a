"""Tests for tree walking and end-to-end file resolution."""

from __future__ import annotations

import os
import stat
from collections.abc import Sequence
from pathlib import Path

import pytest

from contextgrep.file_resolver import FilterConfig, PathFilter, TreeWalker
from contextgrep.file_resolver.filters import FilterStage

_GITIGNORE = """
# build artifacts
dist/
*.bin

# secrets
/secrets/
"""


def _make_project(root: Path) -> Path:
    """Create the sample project under `root/project1`, plus `root/custom.ignore`."""
    project = root / "project1"
    (project / "src").mkdir(parents=True)
    (project / "dist").mkdir()
    (project / "secrets").mkdir()
    (project / "main.go").write_text("package main")
    (project / "src" / "helper.go").write_text("package src")
    (project / "README.md").write_text("# Project 1")
    (project / "dist" / "app").write_text("some app")
    (project / "data.bin").write_bytes(b"binary\x00content")
    (project / "secrets" / "key.txt").write_text("secret key")
    (project / ".gitignore").write_text(_GITIGNORE)
    (root / "custom.ignore").write_text("\n# ignore all helpers\n**/helper.go\n")
    return project


def _names(paths: Sequence[Path]) -> list[str]:
    return [p.as_posix() for p in paths]


class RecordingFilter(PathFilter):
    def __init__(self, stages: Sequence[FilterStage]) -> None:
        super().__init__(stages)
        self.checked: list[Path] = []

    def include(self, path: Path, is_dir: bool = False) -> bool:
        self.checked.append(path)
        return super().include(path, is_dir)


def test_recursive_scenario(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    result = TreeWalker(FilterConfig()).resolve(["."])
    assert _names(result) == [".gitignore", "README.md", "main.go", "src/helper.go"]


def test_non_recursive_scenario(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    result = TreeWalker(FilterConfig(recursive=False)).resolve(["."])
    assert _names(result) == [".gitignore", "README.md", "main.go"]


def test_non_recursive_still_recurses_for_double_star(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.chdir(_make_project(tmp_path))
    walker = TreeWalker(FilterConfig(recursive=False))
    assert "src/helper.go" in _names(walker.resolve(["**"]))
    assert _names(walker.resolve(["**/*.go"])) == ["main.go", "src/helper.go"]


def test_exclude_scenario(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    config = FilterConfig(exclude=["**/*.md", "**/main.go"])
    result = _names(TreeWalker(config).resolve(["."]))
    assert "README.md" not in result
    assert "main.go" not in result
    assert "src/helper.go" in result


def test_exclude_from_parent_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _make_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    config = FilterConfig(exclude=["**/*.md", "**/main.go"])
    result = _names(TreeWalker(config).resolve(["project1"]))
    assert result == ["project1/.gitignore", "project1/src/helper.go"]


def test_custom_ignore_file_scenario(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _make_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    config = FilterConfig(ignore_files=["custom.ignore"])
    result = _names(TreeWalker(config).resolve(["project1"]))
    assert "project1/src/helper.go" not in result
    assert "project1/main.go" in result


def test_no_gitignore(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    result = _names(TreeWalker(FilterConfig(respect_gitignore=False)).resolve(["."]))
    assert "dist/app" in result
    assert "secrets/key.txt" in result
    # Still binary.
    assert "data.bin" not in result


def test_binary_file_named_explicitly(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    walker = TreeWalker(FilterConfig(respect_gitignore=False))
    assert walker.resolve(["data.bin"]) == []
    walker = TreeWalker(FilterConfig(respect_gitignore=False, binary_check=False))
    assert _names(walker.resolve(["data.bin"])) == ["data.bin"]


def test_glob_input(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _make_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    result = _names(TreeWalker(FilterConfig()).resolve(["project1/**/*.go"]))
    assert result == ["project1/main.go", "project1/src/helper.go"]


def test_glob_matches_are_still_filtered(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    assert _names(TreeWalker(FilterConfig()).resolve(["secrets/*"])) == []


def test_pruned_directories_are_never_entered(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    nested = Path("dist") / "nested"
    nested.mkdir()
    (nested / "deep.txt").write_text("deep")

    config = FilterConfig()
    path_filter = RecordingFilter.from_config(config)
    assert isinstance(path_filter, RecordingFilter)
    TreeWalker(config, path_filter=path_filter).resolve(["."])

    checked = _names(path_filter.checked)
    assert "dist" in checked
    assert not any(p.startswith("dist/") for p in checked)
    assert not any(p.startswith("secrets/") for p in checked)


def test_pruned_unreadable_directory_is_silent(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    if os.getuid() == 0:
        pytest.skip("root can read any directory regardless of permissions")
    project = _make_project(tmp_path)
    locked = project / "dist" / "locked"
    locked.mkdir()
    (project / "dist").chmod(0o000)
    monkeypatch.chdir(project)
    try:
        result = _names(TreeWalker(FilterConfig()).resolve(["."]))
    finally:
        (project / "dist").chmod(stat.S_IRWXU)
    assert "main.go" in result
    assert "could not read directory" not in caplog.text


def test_unreadable_directory_warns_and_continues(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    if os.getuid() == 0:
        pytest.skip("root can read any directory regardless of permissions")
    project = _make_project(tmp_path)
    locked = project / "locked"
    locked.mkdir()
    (locked / "hidden.txt").write_text("x")
    locked.chmod(0o000)
    monkeypatch.chdir(project)
    try:
        result = _names(TreeWalker(FilterConfig()).resolve(["."]))
    finally:
        locked.chmod(stat.S_IRWXU)
    assert "main.go" in result
    assert "locked/hidden.txt" not in result
    assert "could not read directory" in caplog.text


def test_nested_gitignore(tmp_path: Path):
    """Gitignore in subdirectory should apply to that subtree."""
    (tmp_path / "root.md").write_text("# Root")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "keep.md").write_text("# Keep")
    (sub / ".gitignore").write_text("generated/\n")
    gen = sub / "generated"
    gen.mkdir()
    (gen / "output.md").write_text("# Generated")

    result = TreeWalker(FilterConfig()).resolve([str(tmp_path)])
    names = sorted(p.name for p in result)
    assert names == [".gitignore", "keep.md", "root.md"]


def test_nested_gitignore_combines_parent_rules(tmp_path: Path):
    """Parent .gitignore rules should still apply in subdirectories."""
    (tmp_path / ".gitignore").write_text("*.log\n")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "keep.md").write_text("# Keep")
    (sub / "debug.log").write_text("log data")
    (sub / ".gitignore").write_text("generated/\n")
    gen = sub / "generated"
    gen.mkdir()
    (gen / "output.md").write_text("# Generated")

    result = TreeWalker(FilterConfig(exclude=["**/.gitignore"])).resolve([str(tmp_path)])
    assert [p.name for p in result] == ["keep.md"]


def test_gitignore_above_input_directory_applies(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    project = _make_project(tmp_path)
    monkeypatch.chdir(project / "src")
    (project / "src" / "notes.bin").write_text("text, but gitignored by name")
    assert _names(TreeWalker(FilterConfig()).resolve(["."])) == ["helper.go"]


def test_missing_input_is_not_an_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    assert TreeWalker(FilterConfig()).resolve(["does/not/exist.txt"]) == []


def test_invalid_glob_is_skipped(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    monkeypatch.chdir(_make_project(tmp_path))
    result = TreeWalker(FilterConfig()).resolve(["[abc", "main.go"])
    assert _names(result) == ["main.go"]
    assert "[abc" in caplog.text


def test_empty_result_is_valid(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert TreeWalker(FilterConfig()).resolve([str(empty)]) == []


def test_empty_input_defaults_to_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    walker = TreeWalker(FilterConfig())
    assert walker.resolve([]) == walker.resolve(["."])


def test_deduplication(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    project = _make_project(tmp_path)
    monkeypatch.chdir(project)
    inputs = [".", "main.go", "*.go", str(project / "main.go")]
    result = _names(TreeWalker(FilterConfig()).resolve(inputs))
    assert result.count("main.go") == 1
    assert len(result) == len(set(result))


def test_sorted_output(tmp_path: Path):
    for name in ["c.txt", "a.txt", "B.txt", "b/z.txt"]:
        path = tmp_path / name
        path.parent.mkdir(exist_ok=True)
        path.write_text(name)

    result = TreeWalker(FilterConfig()).resolve([str(tmp_path)])
    assert result == sorted(result, key=str)


def test_idempotent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(_make_project(tmp_path))
    first = TreeWalker(FilterConfig()).resolve(["."])
    second = TreeWalker(FilterConfig()).resolve(["."])
    assert first == second


def test_union_of_disjoint_trees(tmp_path: Path):
    for tree in ("a", "b"):
        root = tmp_path / tree
        (root / "sub").mkdir(parents=True)
        (root / "top.txt").write_text(tree)
        (root / "sub" / "inner.txt").write_text(tree)
        (root / ".gitignore").write_text("*.log\n")
        (root / "skip.log").write_text(tree)

    def resolve(paths: list[str]) -> list[Path]:
        return TreeWalker(FilterConfig()).resolve(paths)

    a, b = str(tmp_path / "a"), str(tmp_path / "b")
    assert sorted(resolve([a]) + resolve([b]), key=str) == resolve([a, b])


def test_parallel_walk_matches_sequential(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _make_project(tmp_path)
    other = tmp_path / "other"
    (other / "pkg").mkdir(parents=True)
    (other / "pkg" / "mod.py").write_text("x = 1")
    (other / "setup.py").write_text("")
    monkeypatch.chdir(tmp_path)

    inputs = ["project1", "other", "custom.ignore"]
    sequential = TreeWalker(FilterConfig()).resolve(inputs)
    parallel = TreeWalker(FilterConfig(workers=4)).resolve(inputs)
    assert parallel == sequential
    assert "other/pkg/mod.py" in _names(parallel)


def test_symlinked_directory_is_not_followed(tmp_path: Path):
    real = tmp_path / "real"
    real.mkdir()
    (real / "file.txt").write_text("x")
    walk_root = tmp_path / "root"
    walk_root.mkdir()
    (walk_root / "link").symlink_to(real, target_is_directory=True)
    (walk_root / "own.txt").write_text("y")

    result = TreeWalker(FilterConfig()).resolve([str(walk_root)])
    assert [p.name for p in result] == ["own.txt"]


def test_symlinked_file_is_kept_alongside_target(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    (tmp_path / "real.txt").write_text("x")
    (tmp_path / "alias.txt").symlink_to(tmp_path / "real.txt")
    monkeypatch.chdir(tmp_path)

    assert _names(TreeWalker(FilterConfig()).resolve(["."])) == ["alias.txt", "real.txt"]


def test_relative_and_absolute_spellings_collapse(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    (tmp_path / "a.txt").write_text("x")
    monkeypatch.chdir(tmp_path)

    result = TreeWalker(FilterConfig()).resolve(["./a.txt", str(tmp_path / "a.txt")])
    assert len(result) == 1
