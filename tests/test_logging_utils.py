import logging
import warnings
from pathlib import Path

from trigeom.core.logging_utils import (
    ENV_LOG_LEVEL,
    default_log_dir,
    format_exception_message,
    log_once,
    setup_logging,
)


def _file_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]


def test_setup_logging_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_LOG_LEVEL, "DEBUG")
    root = logging.getLogger()
    previous_level = root.level
    existing = _file_handlers()
    for handler in existing:
        root.removeHandler(handler)

    try:
        first = setup_logging(log_dir=tmp_path, filename="engine.log")
        second = setup_logging(log_dir=tmp_path / "other", filename="other.log")

        assert first == tmp_path / "engine.log"
        assert second == first
        assert len(_file_handlers()) == 1
        assert root.level == logging.DEBUG
        assert first.exists()
    finally:
        for handler in _file_handlers():
            root.removeHandler(handler)
            handler.close()
        for handler in existing:
            root.addHandler(handler)
        root.setLevel(previous_level)
        logging.captureWarnings(False)


def test_warnings_are_captured_only_on_request(tmp_path):
    root = logging.getLogger()
    previous_level = root.level
    existing = _file_handlers()
    for handler in existing:
        root.removeHandler(handler)
    original_showwarning = warnings.showwarning

    try:
        setup_logging(log_dir=tmp_path, filename="engine.log")
        assert warnings.showwarning is original_showwarning

        for handler in _file_handlers():
            root.removeHandler(handler)
            handler.close()
        setup_logging(log_dir=tmp_path, filename="engine.log", capture_warnings=True)
        assert warnings.showwarning is not original_showwarning
    finally:
        logging.captureWarnings(False)
        for handler in _file_handlers():
            root.removeHandler(handler)
            handler.close()
        for handler in existing:
            root.addHandler(handler)
        root.setLevel(previous_level)

    assert warnings.showwarning is original_showwarning


def test_default_log_dir_uses_xdg_state_home(tmp_path, monkeypatch):
    monkeypatch.setattr("trigeom.core.logging_utils.os.name", "posix")
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))
    assert default_log_dir() == Path(tmp_path) / "trigeom" / "logs"


def test_log_once_logs_a_single_time(caplog):
    logger = logging.getLogger("trigeom.tests.log_once")
    with caplog.at_level(logging.WARNING, logger="trigeom.tests.log_once"):
        assert log_once(logger, "tests.log_once.key", logging.WARNING, "fallback %s", "used")
        assert not log_once(logger, "tests.log_once.key", logging.WARNING, "fallback %s", "used")

    messages = [r.getMessage() for r in caplog.records if r.name == "trigeom.tests.log_once"]
    assert messages == ["fallback used"]


def test_format_exception_message():
    assert format_exception_message("Load failed", "bad", log_path=None) == "Load failed\n\nbad"
    text = format_exception_message("Load failed", "bad", log_path=Path("x.log"))
    assert text.startswith("Load failed\n\nbad")
    assert "x.log" in text
