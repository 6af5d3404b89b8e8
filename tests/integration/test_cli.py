#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/integration/test_cli.py
"""Integration tests for the richmark command-line interface."""

import io
import json

import pytest

from richmark.cli import EXIT_FILE_ERROR, EXIT_SUCCESS, EXIT_UNSTABLE, EXIT_VALIDATION_ERROR, main


@pytest.fixture
def workdir(temp_dir, monkeypatch):
    """Run the CLI from an empty directory without a configured config file."""
    monkeypatch.chdir(temp_dir)
    monkeypatch.delenv("RICHMARK_CONFIG", raising=False)
    return temp_dir


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.mark.integration
@pytest.mark.cli
class TestCommands:
    """Tests for the CLI subcommands."""

    def test_format_to_stdout(self, workdir, capsys):
        source = _write(workdir / "in.md", "* a\n* b\n")
        assert main(["format", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "- a\n- b\n"

    def test_format_to_file(self, workdir):
        source = _write(workdir / "in.md", "#  Title\n")
        target = workdir / "out.md"
        assert main(["format", source, "--out", str(target)]) == EXIT_SUCCESS
        assert target.read_text(encoding="utf-8").startswith("# ")

    def test_format_from_stdin(self, workdir, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("> quoted"))
        assert main(["format", "-"]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "> quoted\n"

    def test_outline(self, workdir, capsys):
        source = _write(workdir / "in.md", "# A\n\ntext\n\n## B\n\n### C")
        assert main(["outline", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "A\n  B\n    C\n"

    def test_outline_rich(self, workdir, capsys):
        source = _write(workdir / "in.md", "# Alpha")
        assert main(["--rich", "outline", source]) == EXIT_SUCCESS
        output = capsys.readouterr().out
        assert "Outline" in output
        assert "Alpha" in output

    def test_count(self, workdir, capsys):
        source = _write(workdir / "in.md", "ab\n\ncd")
        assert main(["count", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out.strip() == "4"

    def test_tree(self, workdir, capsys):
        source = _write(workdir / "in.md", "# Title")
        assert main(["tree", source, "--keys"]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["type"] == "root"
        assert data["key"] == "root"
        assert data["children"][0]["type"] == "heading"
        assert data["children"][0]["level"] == 1

    def test_check_stable(self, workdir, capsys, sample_markdown):
        source = _write(workdir / "in.md", sample_markdown)
        assert main(["check", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out.strip() == "stable"

    def test_check_unstable(self, workdir, capsys):
        """Unescaped export of a literal rule turns into a real rule on re-import."""
        config = _write(workdir / "settings.toml", "[markdown_export]\nescape_special = false\n")
        source = _write(workdir / "in.md", "\\---")
        assert main(["--config", config, "check", source]) == EXIT_UNSTABLE
        output = capsys.readouterr().out
        assert "--- export" in output
        assert "+***" in output


@pytest.mark.integration
@pytest.mark.cli
class TestConfiguration:
    """Tests for configuration handling in the CLI."""

    def test_config_file_applied(self, workdir, capsys):
        config = _write(workdir / "settings.yaml", "markdown_export:\n  bullet_symbol: '+'\n")
        source = _write(workdir / "in.md", "- a")
        assert main(["--config", config, "format", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "+ a\n"

    def test_discovered_config(self, workdir, capsys):
        _write(workdir / ".richmark.json", json.dumps({"markdown_export": {"horizontal_rule": "___"}}))
        source = _write(workdir / "in.md", "---")
        assert main(["format", source]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "___\n"

    def test_invalid_config(self, workdir, capsys):
        config = _write(workdir / "settings.toml", "unknown_setting = 1\n")
        source = _write(workdir / "in.md", "x")
        assert main(["--config", config, "format", source]) == EXIT_VALIDATION_ERROR
        assert "unknown_setting" in capsys.readouterr().err

    def test_missing_config(self, workdir, capsys):
        source = _write(workdir / "in.md", "x")
        assert main(["--config", str(workdir / "nope.toml"), "format", source]) == EXIT_VALIDATION_ERROR


@pytest.mark.integration
@pytest.mark.cli
class TestErrors:
    """Tests for CLI error handling."""

    def test_missing_input(self, workdir, capsys):
        assert main(["format", str(workdir / "missing.md")]) == EXIT_FILE_ERROR
        assert "cannot read" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "richmark" in capsys.readouterr().out

    def test_command_required(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
