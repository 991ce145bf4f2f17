"""Tests for the CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from mranchor.cli import app

runner = CliRunner()

RESPONSE = json.dumps([
    {"filePath": "src/app.js", "lineNumber": 5, "severity": "Warning",
     "title": "Resolve TODO", "description": "Track it in an issue."},
    {"filePath": "src/app.js", "lineNumber": 12, "severity": "Info",
     "title": "Status code", "description": "Consider 204."},
    {"filePath": "missing.js", "lineNumber": 1, "severity": "Info",
     "title": "Ghost", "description": ""},
])


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "mranchor" in result.output


class TestInit:
    def test_creates_config(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / ".mranchor.toml").exists()

    def test_refuses_overwrite(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".mranchor.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert (tmp_path / ".mranchor.toml").read_text() == "existing"


class TestPrompt:
    def test_prints_prompt(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["prompt", str(bundle_file)])
        assert result.exit_code == 0
        assert "=== FULL FILE CONTENT: src/app.js ===" in result.stdout
        assert "=== GIT DIFF: src/app.js ===" in result.stdout

    def test_writes_file(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        out = tmp_path / "prompt.txt"
        result = runner.invoke(app, ["prompt", str(bundle_file), "--output", str(out)])
        assert result.exit_code == 0
        assert "   1: const express" in out.read_text()

    def test_bad_bundle(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["prompt", str(tmp_path / "nope.json")])
        assert result.exit_code == 2


class TestResolve:
    def test_json_output(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        response = tmp_path / "reply.txt"
        response.write_text(RESPONSE)
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["total"] == 3
        lines = data["files"][0]["lines"]
        assert [i["id"] for i in lines["5"]] == ["gitlab-501", "ai-001"]
        # line 12 is only commentable through the expanded context
        assert lines["12"][0]["position"]["old_line"] == 11
        assert data["navigation"] == ["ai-001", "ai-002"]

    def test_context_disabled_degrades(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".mranchor.toml").write_text("[context]\nenabled = false\n")
        response = tmp_path / "reply.txt"
        response.write_text(RESPONSE)
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response), "-f", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert "12" not in data["files"][0]["lines"]
        assert data["files"][0]["file_level"][0]["line_number"] == 12

    def test_terminal_output(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        response = tmp_path / "reply.txt"
        response.write_text(RESPONSE)
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response)])
        assert result.exit_code == 0

    def test_invalid_format(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        response = tmp_path / "reply.txt"
        response.write_text("[]")
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response), "-f", "sarif"])
        assert result.exit_code == 2

    def test_bad_config(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".mranchor.toml").write_text("not [valid")
        response = tmp_path / "reply.txt"
        response.write_text("[]")
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response)])
        assert result.exit_code == 2

    def test_post_requires_token(self, bundle_file: Path, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GITLAB_TOKEN", raising=False)
        response = tmp_path / "reply.txt"
        response.write_text("[]")
        result = runner.invoke(app, ["resolve", str(bundle_file), str(response), "-f", "json", "--post"])
        assert result.exit_code == 2


class TestFetch:
    def test_requires_token(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GITLAB_TOKEN", raising=False)
        result = runner.invoke(app, ["fetch", "https://gitlab.com/g/p/-/merge_requests/1"])
        assert result.exit_code == 2
