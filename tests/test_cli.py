"""Tests for the command line interface (cli.py)."""

import json

import pytest

import cli
from core.llm_provider import MockGenerationProvider
from tests.conftest import CHEST_PAIN_TRANSCRIPT, CODING_JSON, HEADACHE_TRANSCRIPT, NOTE_JSON


@pytest.fixture
def scripted_provider(monkeypatch):
    provider = MockGenerationProvider([NOTE_JSON, CODING_JSON])
    monkeypatch.setattr(cli, "create_generation_provider", lambda settings, use_mock=False: provider)
    return provider


def test_process_text_json(scripted_provider, capsys):
    code = cli.main(["--text", HEADACHE_TRANSCRIPT, "--json", "--no-save"])
    assert code == cli.EXIT_OK

    data = json.loads(capsys.readouterr().out)
    assert data["soap_note"]["problem_list"][0]["problem"] == "Headache"
    assert scripted_provider.call_count == 2


def test_process_file_and_save(scripted_provider, tmp_path, capsys):
    transcript_file = tmp_path / "visit.txt"
    transcript_file.write_text(CHEST_PAIN_TRANSCRIPT, encoding="utf-8")
    output_dir = tmp_path / "out"

    code = cli.main([str(transcript_file), "--output", str(output_dir), "--no-banner"])
    assert code == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "HIGH RISK" in out
    assert "SOAP NOTE" in out
    assert len(list(output_dir.glob("SafeScribe_*_result.json"))) == 1


def test_mock_flag_runs_offline(capsys):
    code = cli.main(["--text", HEADACHE_TRANSCRIPT, "--mock", "--json", "--no-save"])
    assert code == cli.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["coding_suggestions"]["icd_codes"][0]["code"] == "Z00.00"


def test_validate_only(capsys):
    code = cli.main(["--text", CHEST_PAIN_TRANSCRIPT, "--validate-only", "--json"])
    assert code == cli.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["validation"]["emergency_terms"] == ["chest pain", "severe pain"]


def test_empty_text_is_invalid_input(scripted_provider):
    assert cli.main(["--text", "  ", "--no-banner", "--no-save"]) == cli.EXIT_INVALID_INPUT
    assert scripted_provider.call_count == 0


def test_too_long_is_invalid_input():
    assert cli.main(["--text", "a" * 5121, "--validate-only", "--no-banner"]) == cli.EXIT_INVALID_INPUT


def test_missing_file_is_invalid_input(tmp_path):
    assert cli.main([str(tmp_path / "missing.txt"), "--no-banner"]) == cli.EXIT_INVALID_INPUT


def test_non_utf8_file_is_invalid_input(tmp_path, capsys):
    transcript_file = tmp_path / "visit.txt"
    transcript_file.write_bytes(b"Patient: \xff\xfe broken")

    code = cli.main([str(transcript_file), "--validate-only", "--no-banner"])

    assert code == cli.EXIT_INVALID_INPUT
    assert "Cannot read transcript" in capsys.readouterr().out


def test_provider_failure_is_error(monkeypatch):
    provider = MockGenerationProvider(error=RuntimeError("down"))
    monkeypatch.setattr(cli, "create_generation_provider", lambda settings, use_mock=False: provider)
    assert cli.main(["--text", HEADACHE_TRANSCRIPT, "--no-banner", "--no-save"]) == cli.EXIT_ERROR


def test_openai_without_key_is_error(monkeypatch):
    monkeypatch.delenv("SAFESCRIBE_OPENAI_API_KEY", raising=False)
    cli.get_settings.cache_clear()
    try:
        code = cli.main(["--text", HEADACHE_TRANSCRIPT, "--provider", "openai", "--no-banner", "--no-save"])
    finally:
        cli.get_settings.cache_clear()
    assert code == cli.EXIT_ERROR


def test_requires_input():
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 2


def test_build_settings_model_override():
    args = cli.create_parser().parse_args(["--text", "x", "--provider", "openai", "--model", "gpt-4o"])
    settings = cli.build_settings(args)
    assert settings.llm_provider == "openai"
    assert settings.openai_model == "gpt-4o"
