import logging

from assessment_engine.core.logging_config import RequestIdFilter, configure_logging, get_request_id, set_request_id


def _record() -> logging.LogRecord:
    return logging.LogRecord("assessment_engine.test", logging.INFO, __file__, 1, "hello", None, None)


def test_request_id_is_copied_onto_records():
    f = RequestIdFilter()
    set_request_id("req-42")
    try:
        rec = _record()
        assert f.filter(rec) is True
        assert rec.request_id == "req-42"
        assert get_request_id() == "req-42"
    finally:
        set_request_id(None)

    rec = _record()
    f.filter(rec)
    assert rec.request_id == "-"


def test_configure_logging_installs_one_handler():
    configure_logging("INFO")
    configure_logging("INFO")
    ours = [h for h in logging.getLogger().handlers if getattr(h, "_assessment_engine", False)]
    assert len(ours) == 1
