from __future__ import annotations

import importlib
from contextlib import contextmanager
from pathlib import Path

from attr_ingest.cli import main as cli_main

# attr_ingest.cli.main は関数として re-export されているのでモジュールを明示的に取得
cli_module = importlib.import_module("attr_ingest.cli.main")


def test_cli_processes_source_directory(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO Processing files from: data" in out
    assert "INFO no catalog configured, key reconciliation skipped" in out
    assert "SUMMARY files=2/2 success=2 failed=0 products=6" in out
    assert (temp_workdir / "out" / "loja.canonical.csv").exists()


def test_cli_explicit_files(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    code = cli_main([str(write_data_files[0])])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=1/1 success=1 failed=0 products=2" in out


def test_cli_missing_explicit_file(temp_workdir: Path, write_config: Path, capsys):
    code = cli_main(["data/nope.csv"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR file not found: data/nope.csv" in out


def test_cli_catalog_file(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    keys = temp_workdir / "keys.txt"
    keys.write_text("ABC-1\nA-001\n", encoding="utf-8")
    code = cli_main(["--catalog-file", str(keys)])
    out = capsys.readouterr().out
    assert code == 0
    assert "matched=2 unmatched=3" in out


def test_cli_inspect_data(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    (temp_workdir / "data" / "vazio.csv").write_text("", encoding="utf-8")
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: loja.csv" in out
    assert "kind=platform-export" in out
    assert "key_column='SKU' keys=2" in out
    assert "slots=3 attributes=['Cor', 'Tamanho', 'Material']" in out
    assert "FILE: fornecedor.txt" in out
    assert "columns=['Descricao', 'Peso', 'Tags']" in out
    assert "FILE: vazio.csv" in out
    assert "error: vazio.csv is empty" in out
    # inspect は出力ファイルを作らない
    assert not (temp_workdir / "out").exists()
    assert "SUMMARY" not in out


def test_cli_debug_mode(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    code = cli_main(["--debug"])
    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG classify:" in out


def test_cli_store_without_dsn(temp_workdir: Path, write_config: Path, write_data_files, capsys, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PGDSN", raising=False)
    code = cli_main(["--store"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR database: no database DSN" in out


def test_cli_store_uses_cursor(temp_workdir: Path, write_config: Path, write_data_files, capsys, monkeypatch):
    cursor = object()
    seen = {}

    @contextmanager
    def fake_connection(cfg):
        yield cursor

    def fake_process_all(cfg, files=None, catalog=None, cursor=None):
        seen["cursor"] = cursor
        from attr_ingest.services.orchestrator import process_all
        return process_all(cfg, files=files, catalog=catalog)

    monkeypatch.setattr(cli_module, "_db_connection", fake_connection)
    monkeypatch.setattr(cli_module, "process_all", fake_process_all)
    code = cli_main(["--store"])
    assert code == 0
    assert seen["cursor"] is cursor


def test_cli_env_file_loaded(temp_workdir: Path, write_config: Path, write_data_files, capsys, monkeypatch):
    monkeypatch.delenv("CATALOG_API_KEY", raising=False)
    (temp_workdir / ".env").write_text("CATALOG_API_KEY=from-dotenv\n", encoding="utf-8")
    import os

    try:
        assert cli_main([]) == 0
        assert os.environ["CATALOG_API_KEY"] == "from-dotenv"
    finally:
        os.environ.pop("CATALOG_API_KEY", None)
