import json
import logging
import sys

from repro_tracker.core.logging import SERVICE_NAME, JsonFormatter, record_extras


def _record(msg="time entry opened", args=(), exc_info=None, **extra):
    logger = logging.getLogger("repro_tracker.services.time_entry_service")
    return logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, msg, args, exc_info, extra=extra or None
    )


def test_extras_are_nested_and_standard_attributes_stay_out():
    record = _record(user_id=7, file_id=12, time_entry_id="abc")

    payload = json.loads(JsonFormatter().format(record))

    assert payload["service"] == SERVICE_NAME
    assert payload["level"] == "INFO"
    assert payload["logger"] == "repro_tracker.services.time_entry_service"
    assert payload["message"] == "time entry opened"
    assert payload["extra"] == {"user_id": 7, "file_id": 12, "time_entry_id": "abc"}


def test_record_without_extras_has_no_extra_key():
    record = _record("report for %s", args=("today",))

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "report for today"
    assert "extra" not in payload
    assert record_extras(record) == {}


def test_exception_traceback_is_rendered():
    try:
        raise RuntimeError("storage went away")
    except RuntimeError:
        record = _record("unhandled error", exc_info=sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: storage went away" in payload["exc_info"]
    assert "extra" not in payload
