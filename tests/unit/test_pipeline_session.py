from __future__ import annotations

import threading

from attr_ingest.catalog.client import CatalogError, StaticCatalog
from attr_ingest.excel.reader import DecodedUpload
from attr_ingest.models.config_models import CatalogSettings, IngestConfig
from attr_ingest.services import session as session_module
from attr_ingest.services.pipeline import PipelineOutput, run_pipeline, tiers_from_settings
from attr_ingest.services.session import AnalysisSession


def _upload(text: str) -> DecodedUpload:
    return DecodedUpload(text=text, source_format="CSV", size=len(text))


class DownCatalog:
    def __init__(self) -> None:
        self.calls = 0

    def fetch_keys(self):
        self.calls += 1
        raise CatalogError("catalog request failed [502] offset=0")


def test_run_pipeline_without_catalog(platform_csv: str):
    output = run_pipeline(_upload(platform_csv), "loja.csv")
    assert output.reconciliation is None
    assert output.analysis.keys == ["ABC-1", "XYZ-9"]
    assert output.export_text.startswith("SKU;Cor;Tamanho;Material\n")
    assert output.exported_rows == 2


def test_run_pipeline_with_catalog(platform_csv: str):
    output = run_pipeline(_upload(platform_csv), "loja.csv", catalog=StaticCatalog(["abc1"]))
    outcome = output.reconciliation
    assert outcome is not None and outcome.completed
    assert outcome.match.tier_by_key == {"ABC-1": "normalized"}
    assert outcome.match.unmatched_keys == {"XYZ-9"}
    # export is built regardless of reconciliation
    assert output.exported_rows == 2


def test_run_pipeline_catalog_unavailable_keeps_analysis(platform_csv: str):
    config = IngestConfig(catalog=CatalogSettings(max_attempts=2, backoff_seconds=0))
    catalog = DownCatalog()
    output = run_pipeline(_upload(platform_csv), "loja.csv", config, catalog)
    assert catalog.calls == 2
    assert output.reconciliation.completed is False
    assert output.reconciliation.match is None
    assert output.analysis.is_platform_export is True
    assert output.exported_rows == 2


def test_tiers_from_settings_uses_strip_lists():
    tiers = tiers_from_settings(CatalogSettings(strip_prefixes=("SKU",)))
    assert [t.name for t in tiers] == ["exact", "normalized", "aggressive"]
    assert tiers[2].normalize("SKU-007") == "7"


def test_pipeline_output_exported_rows_header_only():
    out = PipelineOutput(analysis=None, export_text="SKU\n")  # type: ignore[arg-type]
    assert out.exported_rows == 0


def test_session_publish_last_writer_wins():
    s = AnalysisSession()
    first = s.begin()
    second = s.begin()
    older = PipelineOutput(analysis=None, export_text="SKU\nA\n")  # type: ignore[arg-type]
    newer = PipelineOutput(analysis=None, export_text="SKU\nB\n")  # type: ignore[arg-type]

    assert s.publish(second, newer) is True
    # 古い実行の結果は後から届いても捨てる
    assert s.publish(first, older) is False
    assert s.current is newer


def test_session_reset_invalidates_running_token():
    s = AnalysisSession()
    token = s.begin()
    s.reset()
    out = PipelineOutput(analysis=None, export_text="SKU\n")  # type: ignore[arg-type]
    assert s.publish(token, out) is False
    assert s.current is None


def test_session_run(platform_csv: str):
    s = AnalysisSession(catalog=StaticCatalog(["ABC-1", "XYZ-9"]))
    output = s.run(platform_csv.encode("utf-8"), "loja.csv")
    assert output is not None
    assert s.current is output
    assert output.reconciliation.match.unmatched_count == 0


def test_session_run_superseded_returns_none(monkeypatch, platform_csv: str):
    s = AnalysisSession()
    real_run_pipeline = session_module.run_pipeline

    def slow_pipeline(*args, **kwargs):
        # a newer upload starts while this one is still running
        s.begin()
        return real_run_pipeline(*args, **kwargs)

    monkeypatch.setattr(session_module, "run_pipeline", slow_pipeline)
    assert s.run(platform_csv.encode("utf-8"), "loja.csv") is None
    assert s.current is None


def test_session_concurrent_runs_keep_latest(platform_csv: str, generic_csv: str):
    s = AnalysisSession()
    release = threading.Event()
    results: dict[str, object] = {}
    first_token = s.begin()

    def older_run():
        release.wait(timeout=5)
        out = run_pipeline(_upload(platform_csv), "loja.csv")
        results["older"] = s.publish(first_token, out)

    t = threading.Thread(target=older_run)
    t.start()
    newer = s.run(generic_csv.encode("utf-8"), "fornecedor.csv")
    release.set()
    t.join(timeout=5)

    assert results["older"] is False
    assert s.current is newer
    assert s.current.analysis.is_platform_export is False
