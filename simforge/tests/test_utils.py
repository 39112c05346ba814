"""
Test Suite: Utilities

Tests for ID generation and logging setup.
"""

import logging

from simforge.utils.ids import (
    generate_id,
    generate_partial_id,
    generate_project_id,
    next_role_id,
)
from simforge.utils.logging import SimforgeFormatter, get_logger, log_operation, setup_logging


def test_id_generation():
    """Test ID generation utilities."""
    print("\nTesting ID generation...")

    prj_id = generate_project_id()
    assert prj_id.startswith("PRJ_")
    print(f"  ✓ Generated project ID: {prj_id}")

    prefix, timestamp, counter = prj_id.split("_")
    assert prefix == "PRJ"
    assert int(timestamp) > 0
    assert len(counter) >= 3
    print("  ✓ Format is PRJ_<timestamp>_<counter>")

    assert generate_id("PRJ") != generate_id("PRJ")
    assert generate_id().count("_") == 1
    print("  ✓ Ids are unique")

    assert len(generate_partial_id()) == 36
    assert next_role_id([]) == 1
    assert next_role_id([3, 1, 2]) == 4
    print("  ✓ Partial and role ids")


def test_logging_setup(tmp_path):
    print("\nTesting logging setup...")

    log_file = setup_logging(level="DEBUG", log_dir=tmp_path, console_output=False)
    assert log_file == tmp_path / "simforge.log"
    logger = get_logger("tests.utils")
    assert logger.name == "simforge.tests.utils"
    assert get_logger("simforge.tests.utils") is logger

    log_operation(logger, "Compiled", {"roles": 2})

    root = logging.getLogger("simforge")
    for handler in root.handlers:
        handler.flush()
    content = log_file.read_text(encoding="utf-8")
    assert "Compiled: roles=2" in content
    assert "[tests.utils" in content
    print("  ✓ File log written with short logger name")

    for handler in root.handlers:
        handler.close()
    root.handlers = []
    root.setLevel(logging.NOTSET)


def test_formatter_without_colors():
    formatter = SimforgeFormatter(use_colors=False)
    record = logging.LogRecord("simforge.export.compiler", logging.WARNING, __file__, 1, "careful", None, None)
    line = formatter.format(record)
    assert line.startswith("[")
    assert line.endswith(f"] WARNING  [{'export.compiler':20}] careful")
    assert "\033[" not in line


def test_no_log_file_without_directory():
    assert setup_logging(level="INFO", console_output=False) is None
    root = logging.getLogger("simforge")
    assert root.handlers == []
    root.setLevel(logging.NOTSET)
