"""Smoke tests for the command-line interface."""

from __future__ import annotations

from typer.testing import CliRunner

from unsalted_truth.cli import app


runner = CliRunner()


def test_categories_lists_catalog():
    result = runner.invoke(app, ["categories"])

    assert result.exit_code == 0
    assert "WORLD" in result.output
    assert "Spanish" in result.output


def test_feed_without_api_key_exits_with_config_error(monkeypatch, tmp_path):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["feed", "--category", "WORLD"])

    assert result.exit_code == 2
    assert "Missing Google API key" in result.output
