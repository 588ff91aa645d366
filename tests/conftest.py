"""
Pytest configuration and shared fixtures for the test suite.

This module provides common test fixtures, configuration, and utilities
used across all test modules.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator
from xml.etree import ElementTree as ET

from xml_node_stream.utils.validation import NodeValidator


@pytest.fixture(scope="session")
def test_data_dir() -> Path:
    """Provide the real test data directory path."""
    project_root = Path(__file__).parent.parent
    return project_root / "test_data"


@pytest.fixture
def validator() -> NodeValidator:
    """Provide a node validator instance."""
    return NodeValidator()


@pytest.fixture(scope="session")
def temp_output_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test outputs."""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def records_file(tmp_path) -> Path:
    """A small generated document with 50 records."""
    return write_records_document(tmp_path / "records.xml", 50)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "performance: mark test as a performance test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add default markers."""
    for item in items:
        # Add unit marker to tests that don't have other markers
        if not any(marker.name in ["integration", "performance", "slow"]
                  for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)


# Helper functions for tests
def record_xml(i: int) -> str:
    """Markup of the i-th generated record."""
    return (
        f'<record id="{i}">'
        f'<name>Record {i}</name>'
        f'<tags><tag>t{i % 7}</tag><tag>common</tag></tags>'
        f'<note>{"x" * (i % 40)}</note>'
        f'</record>'
    )


def write_records_document(path: Path, count: int) -> Path:
    """Write a document with ``count`` records under a single root, one record per line."""
    with open(path, "w", encoding="utf-8") as f:
        f.write('<?xml version="1.0" encoding="UTF-8"?>\n<records>\n')
        for i in range(count):
            f.write("  " + record_xml(i) + "\n")
        f.write("</records>\n")
    return path


def child_text(node: str, tag: str = "child") -> str:
    """Stripped text of the first ``tag`` element of a node."""
    element = ET.fromstring(node).find(tag)
    assert element is not None, f"No <{tag}> in node: {node}"
    return "".join(element.itertext()).strip()


def assert_valid_nodes(nodes, validator=None):
    """Helper function to assert nodes are well-formed."""
    if validator is None:
        validator = NodeValidator()

    assert len(nodes) > 0, "No nodes extracted"

    for i, node in enumerate(nodes):
        issues = validator.validate_node(node)
        assert len(issues) == 0, f"Node {i} validation failed: {issues}"
