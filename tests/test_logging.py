"""
Tests for structured logging setup.
"""
import json
import logging

from workqueue.core.logging import get_logger, setup_logging


def _records(caplog, name):
    return [json.loads(record.getMessage()) for record in caplog.records if record.name == name]


def test_logger_emits_json(caplog):
    caplog.set_level(logging.INFO)
    setup_logging("INFO")

    logger = get_logger("workqueue.test")
    logger.info("Messages promoted", queue="q:test", delayed=2)

    records = _records(caplog, "workqueue.test")
    assert records[-1]["event"] == "Messages promoted"
    assert records[-1]["queue"] == "q:test"
    assert records[-1]["delayed"] == 2
    assert records[-1]["level"] == "info"


def test_logger_carries_bound_queue(caplog):
    caplog.set_level(logging.INFO)
    logger = get_logger("workqueue.bound", queue="q:orders")
    setup_logging("INFO")

    logger.warning("Message left for redelivery", message_id="m1")

    records = _records(caplog, "workqueue.bound")
    assert records[-1]["queue"] == "q:orders"
    assert records[-1]["message_id"] == "m1"
    assert records[-1]["level"] == "warning"
