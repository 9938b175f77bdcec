from __future__ import annotations

import json
from pathlib import Path

from attr_ingest.cli import main as cli_main

"""Partial failure run: broken files are logged, the rest is still exported."""


def test_run_partial_failure(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    data = temp_workdir / "data"
    (data / "vazio.csv").write_text("\n", encoding="utf-8")
    # xlsx 拡張子だが中身は壊れている
    (data / "corrompido.xlsx").write_bytes(b"not a zip archive")

    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=4/4 success=2 failed=2 products=6" in out
    assert "ERROR file=corrompido.xlsx failed:" in out

    exported = sorted(p.name for p in (temp_workdir / "out").iterdir())
    assert exported == ["fornecedor.canonical.csv", "loja.canonical.csv"]

    log = next((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]
    by_file = {}
    for r in records:
        by_file.setdefault(r["file"], []).append(r["error_type"])
    assert by_file["vazio.csv"] == ["EMPTY_INPUT"]
    assert by_file["corrompido.xlsx"] == ["PROCESSING_ERROR"]
    assert by_file["loja.csv"] == ["INVALID_KEY"]


def test_run_catalog_unreachable_is_not_a_failure(temp_workdir: Path, write_config: Path, write_data_files, capsys):
    # 存在しないキーファイル → カタログ取得失敗 (リトライ後に照合なしで継続)
    code = cli_main(["--catalog-file", str(temp_workdir / "missing-keys.txt")])
    out = capsys.readouterr().out
    assert code == 0
    assert "success=2 failed=0" in out
    assert "matched=0 unmatched=0" in out
    assert "WARN reconcile: catalog unavailable after 2 attempts" in out
