from __future__ import annotations

from pathlib import Path

from attr_ingest.cli import main as cli_main

"""Exit code contract: 0 all success, 2 partial failure, 1 fatal startup."""


def test_exit_code_fatal_missing_config(temp_workdir: Path, capsys):
    # config/ingest.yml 無し → exit 1
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_exit_code_fatal_invalid_config(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "ingest.yml").write_text("source_directory: ./data\nbogus: 1\n", encoding="utf-8")
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config validation failed" in out


def test_exit_code_fatal_missing_directory(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "ingest.yml").write_text("source_directory: ./nowhere\n", encoding="utf-8")
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR directory not found: nowhere" in out


def test_exit_code_all_success(temp_workdir: Path, write_config, write_data_files, capsys):
    assert cli_main([]) == 0


def test_exit_code_all_success_empty_directory(temp_workdir: Path, write_config, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=0/0 success=0 failed=0" in out


def test_exit_code_partial_failure(temp_workdir: Path, write_config, write_data_files, capsys):
    (temp_workdir / "data" / "vazio.csv").write_bytes(b"")
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "ERROR file=vazio.csv failed: vazio.csv is empty" in out
    assert "success=2 failed=1" in out
