"""Tests for error types and logging setup."""

import json
import logging
import pickle
import sys

from neardup.errors import ConfigError, EmptyInputError, MismatchError, NearDupError
from neardup.utils.logging_setup import JSONFormatter, log_operation, setup_logging


class TestErrors:
    """Test error hierarchy and details."""

    def test_hierarchy(self):
        for cls in (ConfigError, EmptyInputError, MismatchError):
            assert issubclass(cls, NearDupError)

    def test_config_error_details(self):
        error = ConfigError("bad bands", parameter="bands", value=7)

        assert str(error) == "bad bands"
        assert error.details == {"parameter": "bands", "value": 7}

    def test_mismatch_error_details(self):
        error = MismatchError("shape", expected=(240, 80), actual=(120, 40), details={"op": "merge"})

        assert error.details["expected"] == (240, 80)
        assert error.details["op"] == "merge"

    def test_errors_survive_pickling(self):
        error = pickle.loads(pickle.dumps(EmptyInputError("no tokens", doc_id="d1")))

        assert isinstance(error, EmptyInputError)
        assert error.doc_id == "d1"
        assert error.message == "no tokens"


class TestLogging:
    """Test package logging configuration."""

    def test_setup_logging_replaces_handlers(self):
        logger = setup_logging("INFO")
        setup_logging("INFO")

        assert logger.name == "neardup"
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_json_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "neardup.jsonl"
        logger = setup_logging("DEBUG", console=False, log_file=log_file)

        log_operation(logger, "build", documents=3)
        for handler in logger.handlers:
            handler.flush()

        record = json.loads(log_file.read_text().splitlines()[0])
        assert record["operation"] == "build"
        assert record["documents"] == 3
        assert record["level"] == "INFO"

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_json_formatter_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("neardup", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError" in data["exception"]
