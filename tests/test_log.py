import io
import json
import logging

import pytest
import structlog

from dql.log import configure_logging, get_logger, parse_level


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()


@pytest.mark.parametrize(
    "name,level",
    [("debug", logging.DEBUG), ("WARN", logging.WARNING), (" error ", logging.ERROR), ("loud", logging.INFO), (None, logging.INFO)],
)
def test_parse_level(name, level):
    assert parse_level(name) == level


def test_json_format_emits_one_object_per_line():
    stream = io.StringIO()
    configure_logging("INFO", "json", stream=stream)
    log = get_logger("dql.test")
    log.debug("hidden")
    log.warning("Query returned no data", file="a.yaml", query="avg:a{*}")
    lines = stream.getvalue().strip().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "Query returned no data"
    assert record["level"] == "warning"
    assert record["file"] == "a.yaml"
    assert "timestamp" in record


def test_console_format_renders_key_values():
    stream = io.StringIO()
    configure_logging("DEBUG", "console", stream=stream)
    get_logger().info("Query result", value=2.5)
    out = stream.getvalue()
    assert "Query result" in out
    assert "value=2.5" in out
