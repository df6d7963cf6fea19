"""Test structured logging setup."""

import json
import logging

import pytest

from poe_registry.observability.logger import (
    get_trace_id,
    new_trace_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_trace_id_is_stable_until_renewed():
    first = new_trace_id()
    assert get_trace_id() == first
    assert new_trace_id() != first


def test_stdlib_records_rendered_as_json(capsys):
    setup_logging("DEBUG", "json")
    tid = new_trace_id()
    logging.getLogger("poe_registry.test").info("claim %s", "created")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "claim created"
    assert payload["level"] == "info"
    assert payload["logger"] == "poe_registry.test"
    assert payload["trace_id"] == tid


def test_level_filters(capsys):
    setup_logging("WARNING", "console")
    logging.getLogger("poe_registry.test").info("hidden")
    assert "hidden" not in capsys.readouterr().err
