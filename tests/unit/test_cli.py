"""Tests for scalar.cli — command wiring and exit codes."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest
from typer.testing import CliRunner

from scalar.cli import app

runner = CliRunner()

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

REGISTRY_YAML = (
    "cacheServers:\n"
    "  - name: East\n    url: https://cache.east\n    globalDefault: true\n"
    "  - name: West\n    url: https://cache.west\n"
)


@pytest.fixture()
def registry_file(tmp_path: Path) -> Path:
    p = tmp_path / "registry.yaml"
    p.write_text(REGISTRY_YAML, encoding="utf-8")
    return p


def test_locate_found(root: Path) -> None:
    (root / "enl" / "src" / ".git").mkdir(parents=True)
    result = runner.invoke(app, ["--log-text", "locate", str(root / "enl" / "src")])
    assert result.exit_code == 0, result.output
    assert "Enlistment root" in result.output
    assert "Working directory" in result.output


def test_locate_not_found(root: Path) -> None:
    (root / "plain").mkdir()
    result = runner.invoke(app, ["--log-text", "locate", str(root / "plain")])
    assert result.exit_code == 2


def test_outside_enlistment_exits_2(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(root)
    result = runner.invoke(app, ["--log-text", "paths"])
    assert result.exit_code == 2


def test_list_cache_servers(root: Path, registry_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    result = runner.invoke(app, ["--log-text", "cache-server", "--list", "--registry", str(registry_file)])
    assert result.exit_code == 0, result.output
    assert "East" in result.output
    assert "West" in result.output


def test_list_without_registry_fails(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    result = runner.invoke(app, ["--log-text", "cache-server", "--list"])
    assert result.exit_code == 1


def test_missing_registry_file_fails(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    result = runner.invoke(app, ["--log-text", "cache-server", "--list", "--registry", str(root / "nope.yaml")])
    assert result.exit_code == 1


@requires_git
class TestCacheServerWithGit:
    @pytest.fixture()
    def enlistment_root(self, root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
        src = root / "enl" / "src"
        src.mkdir(parents=True)
        subprocess.run(["git", "init", "-q", str(src)], check=True, capture_output=True)
        subprocess.run(
            ["git", "config", "--local", "remote.origin.url", "https://dev.example/org/repo"],
            cwd=src,
            check=True,
        )
        monkeypatch.chdir(src)
        return root / "enl"

    def _configured(self, enlistment_root: Path) -> str:
        proc = subprocess.run(
            ["git", "config", "--local", "--get", "gvfs.cache-server"],
            cwd=enlistment_root / "src",
            capture_output=True,
            text=True,
        )
        return proc.stdout.strip()

    def test_set_friendly_name(self, enlistment_root: Path, registry_file: Path) -> None:
        result = runner.invoke(app, ["--log-text", "cache-server", "--set", "west", "--registry", str(registry_file)])
        assert result.exit_code == 0, result.output
        assert self._configured(enlistment_root) == "https://cache.west"

    def test_set_url_needs_no_registry(self, enlistment_root: Path) -> None:
        result = runner.invoke(app, ["--log-text", "cache-server", "--set", "https://cache.private"])
        assert result.exit_code == 0, result.output
        assert self._configured(enlistment_root) == "https://cache.private"

    def test_set_unknown_name_fails(self, enlistment_root: Path, registry_file: Path) -> None:
        result = runner.invoke(app, ["--log-text", "cache-server", "--set", "north", "--registry", str(registry_file)])
        assert result.exit_code == 1
        assert self._configured(enlistment_root) == ""

    def test_get_defaults_to_none(self, enlistment_root: Path) -> None:
        result = runner.invoke(app, ["--log-text", "cache-server"])
        assert result.exit_code == 0, result.output
        assert "None" in result.output


@requires_git
class TestCacheServerWithBrokenConfig:
    @pytest.fixture(autouse=True)
    def broken_enlistment(self, root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        src = root / "enl" / "src"
        src.mkdir(parents=True)
        subprocess.run(["git", "init", "-q", str(src)], check=True, capture_output=True)
        (src / ".git" / "config").write_text("[core\n\tbroken = \n", encoding="utf-8")
        monkeypatch.chdir(src)

    @pytest.mark.parametrize(
        "args",
        [
            ["cache-server", "--set", "https://cache.private"],
            ["cache-server", "--set", "west"],
            ["cache-server"],
        ],
    )
    def test_unreadable_config_exits_1(self, args: list[str], registry_file: Path) -> None:
        result = runner.invoke(app, ["--log-text", *args, "--registry", str(registry_file)])
        assert result.exit_code == 1, result.output
        assert isinstance(result.exception, SystemExit)
        assert "ERROR" in result.output


def test_paths_with_cache_key(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    result = runner.invoke(
        app, ["--log-text", "paths", "--cache-root", str(root / "cache"), "--cache-key", "k1"]
    )
    assert result.exit_code == 0, result.output
    assert "True" in result.output


def test_paths_cache_key_needs_cache_root(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    result = runner.invoke(app, ["--log-text", "paths", "--cache-key", "k1"])
    assert result.exit_code == 2
    assert "local_cache_root" in result.output


def test_invalid_environment_settings_exit_2(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCALAR_ENLISTMENT_ROOT", str(root))
    monkeypatch.setenv("SCALAR_CACHE_KEY", "k1")
    result = runner.invoke(app, ["--log-text", "cache-server"])
    assert result.exit_code == 2
    assert isinstance(result.exception, SystemExit)
