from __future__ import annotations

import io
import re

import pytest
import typer
from typer.testing import CliRunner

from smartbucket_cli import __version__
from smartbucket_cli.main import app, main

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def _plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "RAINDROP_API_KEY",
        "RAINDROP_API_BASE_URL",
        "RAINDROP_MANIFEST",
        "SMARTBUCKET_PLAIN_JSON",
        "SMARTBUCKET_QUIET",
    ):
        monkeypatch.delenv(name, raising=False)


def test_run_shows_header_and_exits_on_zero():
    result = CliRunner().invoke(app, [], input="0\n")
    out = _plain(result.output)
    assert result.exit_code == 0, out
    assert "Raindrop SmartBucket Manager" in out
    assert "Select an option:" in out
    assert "Goodbye!" in out


def test_run_loads_bucket_from_manifest_option(tmp_path):
    manifest = tmp_path / "conf.manifest"
    manifest.write_text('application "a" {\n    smartbucket "docs" {}\n}\n', encoding="utf-8")

    result = CliRunner().invoke(app, ["--manifest", str(manifest)], input="10\n0\n")

    out = _plain(result.output)
    assert result.exit_code == 0, out
    assert "BUCKET_NAME = docs (from manifest)" in out


def test_help_lists_options():
    result = CliRunner().invoke(app, ["--help"])
    out = _plain(result.output)
    assert result.exit_code == 0
    for flag in ("--manifest", "--base-url", "--plain-json", "--quiet", "--version"):
        assert flag in out


def test_main_version(capsys):
    assert main(["--version"]) == 0
    assert f"smartbucket {__version__}" in capsys.readouterr().out


def test_main_exits_cleanly_on_zero(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("0\n"))
    assert main([]) == 0
    assert "Goodbye!" in _plain(capsys.readouterr().out)


def test_main_end_of_input_aborts(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert main([]) == 1
    assert "aborted" in _plain(capsys.readouterr().err)


def test_main_rejects_bad_base_url(capsys):
    assert main(["--base-url", "ftp://example.invalid"]) == 2
    assert "invalid API base URL" in _plain(capsys.readouterr().err)


def test_main_unknown_option_is_usage_error(capsys):
    assert main(["--nope"]) == 2


def test_run_starts_with_undecodable_manifest(tmp_path):
    (tmp_path / "raindrop.manifest").write_bytes(b'\xff smartbucket "b" {}\n')

    result = CliRunner().invoke(app, [], input="0\n")

    out = _plain(result.output)
    assert result.exit_code == 0, out
    assert "not valid UTF-8" in out
    assert "Goodbye!" in out


def test_main_maps_typer_abort_to_exit_one(monkeypatch, capsys):
    def aborting(session, prompt, *, pause=None):
        raise typer.Abort()

    monkeypatch.setattr("smartbucket_cli.main.run_menu", aborting)
    assert main([]) == 1
    assert "aborted" in _plain(capsys.readouterr().err)
