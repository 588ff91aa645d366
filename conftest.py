"""
Global pytest configuration for xml_node_stream tests.

Keeps library console logging out of test output; tests that inspect log
records use caplog, which is unaffected.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def configure_test_logging():
    """Disable the library's console handler for the test session."""
    from xml_node_stream.logging_config import LogLevel, configure_logging

    configure_logging(level=LogLevel.NORMAL, console_output=False, collect_performance=False)
    yield
    configure_logging(level=LogLevel.NORMAL, console_output=False, file_output=False, format_json=False)
