import logging
from logging.handlers import RotatingFileHandler

from shopcore.logger import _build_handlers


def test_file_handler_rotates_under_configured_path(monkeypatch, tmp_path):
    path = tmp_path / "logs" / "shop.log"
    monkeypatch.setenv("LOG_TO_STDOUT", "false")
    monkeypatch.setenv("LOG_TO_FILE", "true")
    monkeypatch.setenv("LOG_FILE", str(path))
    monkeypatch.setenv("LOG_MAX_BYTES", "2048")

    handlers = _build_handlers(logging.DEBUG)

    try:
        assert len(handlers) == 1
        fh = handlers[0]
        assert isinstance(fh, RotatingFileHandler)
        assert fh.maxBytes == 2048
        assert fh.level == logging.DEBUG
        assert path.parent.is_dir()
    finally:
        for h in handlers:
            h.close()


def test_no_handlers_when_both_sinks_are_off(monkeypatch):
    monkeypatch.setenv("LOG_TO_STDOUT", "false")
    monkeypatch.setenv("LOG_TO_FILE", "false")

    assert _build_handlers(logging.INFO) == []
