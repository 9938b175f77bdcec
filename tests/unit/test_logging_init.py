from __future__ import annotations

import logging
from io import StringIO

from attr_ingest.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    enable_debug,
    get_logger,
    log_summary,
    reset_logging,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == "attr_ingest"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    assert setup_logging() is first
    assert get_logger() is first
    assert len(first.handlers) == 1


def test_reset_logging_rebuilds_single_handler():
    setup_logging()
    reset_logging()
    logger = setup_logging()
    assert len(logger.handlers) == 1


def test_labeled_prefixes():
    captured = StringIO()
    logger = logging.getLogger("test_attr_ingest_labels")
    logger.setLevel(logging.INFO)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    handler = logging.StreamHandler(captured)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("info message")
    logger.warning("warn message")
    logger.error("error message")
    logger.log(SUMMARY_LEVEL, "files=1/1")

    assert captured.getvalue().splitlines() == [
        "INFO info message",
        "WARN warn message",
        "ERROR error message",
        "SUMMARY files=1/1",
    ]


def test_module_loggers_propagate_to_app_logger(capsys):
    setup_logging()
    logging.getLogger("attr_ingest.services.analyzer").warning("discarded 2 row(s)")
    log_summary("files=0/0")
    out = capsys.readouterr().out.splitlines()
    assert out == ["WARN discarded 2 row(s)", "SUMMARY files=0/0"]


def test_debug_hidden_at_info(capsys):
    setup_logging()
    logging.getLogger("attr_ingest.parsing.tokenizer").debug("noise")
    assert capsys.readouterr().out == ""


def test_enable_debug(capsys):
    enable_debug()
    logging.getLogger("attr_ingest.services.pivot").debug("pivot: products=1")
    out = capsys.readouterr().out.splitlines()
    assert out == ["DEBUG debug mode enabled", "DEBUG pivot: products=1"]
    assert get_logger().level == logging.DEBUG


def test_exception_traceback_appended():
    captured = StringIO()
    handler = logging.StreamHandler(captured)
    handler.setFormatter(LabeledFormatter())
    logger = logging.getLogger("test_attr_ingest_exc")
    logger.addHandler(handler)
    logger.propagate = False
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("failed")
    text = captured.getvalue()
    assert text.startswith("ERROR failed\nTraceback")
    assert "ValueError: boom" in text
