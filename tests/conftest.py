# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from pathlib import Path
import pytest

from attr_ingest.logging.init import LOGGER_NAME, reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handler は sys.stdout (capsys) に束縛されるのでテストごとに外す
    reset_logging()
    yield
    reset_logging()
    app_logger = logging.getLogger(LOGGER_NAME)
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
output_directory: ./out
slots:
  max_slot: 50
keys:
  max_length: 50
export:
  key_header: SKU
catalog:
  max_attempts: 2
  backoff_seconds: 0
database:
  table: sku_attributes
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def platform_csv() -> str:
    """Platform export: 3 attribute slots, ABC-1 split over two rows, one markup key."""
    return (
        "SKU;Nome;Nome do atributo 1;Valores do atributo 1;Nome do atributo 2;"
        "Valores do atributo 2;Nome do atributo 3;Valores do atributo 3;Preço\n"
        "ABC-1;Camiseta;Cor:;Vermelho;;;;;10\n"
        "ABC-1;;Tamanho;P\\, M\\, G;;;;;10\n"
        "XYZ-9;Caneca;Cor;Azul;Material;Cerâmica;;;25\n"
        "<div class=\"x\">;;Cor;Verde;;;;;0\n"
    )


@pytest.fixture()
def generic_csv() -> str:
    return (
        "Codigo,Descricao,Peso,Tags\n"
        "A-001,Parafuso,\"12,5\",\n"
        "A-002,Porca,3,\"inox,zincado\"\n"
        "A-002,Porca,3,\n"
        "A-003,Arruela,,\n"
    )


@pytest.fixture()
def write_data_files(temp_workdir: Path, platform_csv: str, generic_csv: str) -> list[Path]:
    data = temp_workdir / "data"
    files = [data / "loja.csv", data / "fornecedor.txt"]
    files[0].write_text(platform_csv, encoding="utf-8")
    files[1].write_text(generic_csv, encoding="utf-8")
    return files
