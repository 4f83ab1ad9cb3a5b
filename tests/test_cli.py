from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from biovoice import cli as cli_module


runner = CliRunner()


def _install_voice(root: Path, name: str, code: str) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / f"{name}.onnx").write_bytes(b"onnx")
    (root / f"{name}.onnx.json").write_text(json.dumps({"language": {"code": code}}), encoding="utf-8")


def test_cli_help():
    result = runner.invoke(cli_module.cli, ["--help"])
    assert result.exit_code == 0
    assert "run" in result.output and "voices" in result.output


def test_cli_config_masks_api_key(monkeypatch):
    monkeypatch.setenv("BIOVOICE_CHAT_API_KEY", "sk-secret")
    result = runner.invoke(cli_module.cli, ["config"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["chat_api_key"] == "***"
    assert payload["locale"] == "fr-FR"
    assert "sk-secret" not in result.output


def test_cli_voices_marks_selection(tmp_path: Path, monkeypatch):
    voices = tmp_path / "voices"
    _install_voice(voices, "fr_FR-siwis-medium", "fr_FR")
    _install_voice(voices, "fr_FR-Femme-low", "fr_FR")
    _install_voice(voices, "en_US-amy-medium", "en_US")
    monkeypatch.setenv("BIOVOICE_VOICES_DIR", str(voices))

    result = runner.invoke(cli_module.cli, ["voices"])
    assert result.exit_code == 0
    assert "* fr_FR-Femme-low (fr-FR)" in result.output
    assert "  fr_FR-siwis-medium (fr-FR)" in result.output
    assert "en_US-amy-medium (en-US)" in result.output

    result = runner.invoke(cli_module.cli, ["voices", "--locale", "en-US"])
    assert "* en_US-amy-medium (en-US)" in result.output


def test_cli_voices_without_catalog(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("BIOVOICE_VOICES_DIR", str(tmp_path / "vide"))
    result = runner.invoke(cli_module.cli, ["voices"])
    assert result.exit_code == 1
    assert "Aucune voix" in result.output
