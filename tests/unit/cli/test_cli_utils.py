"""Unit tests for CLI utilities including ErrorFormatter."""

import logging

import pytest

from duskup.cli_utils import ErrorFormatter, PathValidator, UsageError, setup_logging


def chained_error():
    try:
        try:
            raise ConnectionError("connection reset")
        except ConnectionError as e:
            raise OSError("download interrupted") from e
    except OSError as e:
        try:
            raise RuntimeError("toolchain unavailable") from e
        except RuntimeError as outer:
            return outer


class TestErrorFormatter:
    """Tests for ErrorFormatter class."""

    def test_cause_chain_outermost_first(self):
        chain = ErrorFormatter.cause_chain(chained_error())

        assert chain == [
            "RuntimeError: toolchain unavailable",
            "OSError: download interrupted",
            "ConnectionError: connection reset",
        ]

    def test_cause_chain_single_error(self):
        assert ErrorFormatter.cause_chain(ValueError("bad")) == ["ValueError: bad"]

    def test_format_cause_chain_indents_causes(self):
        lines = ErrorFormatter.format_cause_chain(chained_error()).split("\n")

        assert lines[0] == "RuntimeError: toolchain unavailable"
        assert lines[1] == "  caused by OSError: download interrupted"
        assert lines[2] == "    caused by ConnectionError: connection reset"

    def test_handle_usage_error_exits_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_usage_error(UsageError("version missing"), "Usage: x <v>")

        assert exc_info.value.code == 2
        out = capsys.readouterr().out
        assert "version missing" in out
        assert "Usage: x <v>" in out

    def test_handle_failure_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_failure("Toolchain unavailable", chained_error())

        assert exc_info.value.code == 1
        assert "caused by ConnectionError" in capsys.readouterr().out

    def test_handle_keyboard_interrupt_exits_130(self):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()

        assert exc_info.value.code == 130

    def test_handle_unexpected_error_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_unexpected_error(ValueError("boom"))

        assert exc_info.value.code == 1
        assert "ValueError: boom" in capsys.readouterr().out


class TestPathValidator:
    """Tests for PathValidator class."""

    def test_valid_directory(self, tmp_path):
        PathValidator.validate_project_dir(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(tmp_path / "missing")
        assert exc_info.value.code == 2

    def test_file_is_not_a_directory(self, tmp_path):
        path = tmp_path / "duskup.ini"
        path.write_text("")
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(path)
        assert exc_info.value.code == 2


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        level, handlers = root.level, list(root.handlers)
        yield
        root.setLevel(level)
        root.handlers[:] = handlers

    def test_quiet_by_default(self):
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_verbose(self):
        setup_logging(verbose=True)
        setup_logging(verbose=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
