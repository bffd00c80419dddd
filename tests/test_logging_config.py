import logging

from klefki.app.core.logging_config import setup_logging, short_id


def test_short_id_keeps_prefix_only():
    exchange_id = "0e1c3b8e-5d2f-4e34-9c61-6f1d8a2b7c90"
    assert short_id(exchange_id) == "0e1c3b8e"


def test_setup_logging_adds_console_and_file_handlers(tmp_path, monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    logfile = tmp_path / "klefki.log"

    setup_logging("debug", str(logfile))
    try:
        assert root.level == logging.DEBUG
        assert [type(h) for h in root.handlers] == [logging.StreamHandler, logging.FileHandler]
    finally:
        for handler in root.handlers:
            handler.close()


def test_setup_logging_leaves_existing_configuration(monkeypatch):
    root = logging.getLogger()
    existing = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [existing])
    monkeypatch.setattr(root, "level", logging.WARNING)

    setup_logging("nonsense")
    assert root.handlers == [existing]
    assert root.level == logging.WARNING
