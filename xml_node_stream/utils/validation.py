"""
Validation utilities for extracted nodes.

The extractor only guarantees correct boundary splitting. Callers that need
well-formed records check each node here, independently of the stream.
"""

import logging
from typing import Any, Dict, Iterable, List, Union
from xml.etree import ElementTree as ET

from xml_node_stream.core.base import Node, StreamerError

logger = logging.getLogger(__name__)


class ValidationError(StreamerError):
    """Raised by ``validate_and_raise`` when a node has issues."""
    pass


class NodeValidator:
    """
    Well-formedness checks for extracted nodes.

    In the default mode, prefixes bound on an ancestor outside the node
    (``unbound prefix`` errors) are tolerated, since namespace declarations
    usually live on the document root. Strict mode reports them, along with
    text outside the node element.
    """

    def __init__(self, strict_mode: bool = False):
        """
        Initialize node validator.

        Args:
            strict_mode: Whether to use strict validation rules
        """
        self.strict_mode = strict_mode
        self.logger = logging.getLogger(f"{__name__}.NodeValidator")

    def validate_node(self, node: Union[Node, str]) -> List[str]:
        """
        Validate a single node.

        Args:
            node: Node record or node text

        Returns:
            List of validation issues (empty if valid)
        """
        content = node.content if isinstance(node, Node) else node
        issues = []

        if content is None:
            return ["Node content is None"]
        if not content.strip():
            return ["Node is empty"]

        if self.strict_mode and content != content.strip():
            issues.append("Node has leading or trailing whitespace")

        try:
            ET.fromstring(content)
        except ET.ParseError as e:
            if self.strict_mode or "unbound prefix" not in str(e):
                issues.append(f"Node is not well-formed: {e}")

        return issues

    def validate_all(self, nodes: Iterable[Union[Node, str]]) -> Dict[int, List[str]]:
        """
        Validate a sequence of nodes.

        Returns:
            Mapping of node index to its issues, for nodes with issues only
        """
        report = {}
        for i, node in enumerate(nodes):
            index = node.index if isinstance(node, Node) else i
            issues = self.validate_node(node)
            if issues:
                report[index] = issues
        if report:
            self.logger.debug(f"Validation found issues in {len(report)} nodes")
        return report

    def validate_and_raise(self, node: Union[Node, str]) -> None:
        """
        Validate and raise exception if invalid.

        Raises:
            ValidationError: If validation fails
        """
        issues = self.validate_node(node)
        if issues:
            raise ValidationError(f"Validation failed: {'; '.join(issues)}")

    def is_valid(self, node: Any) -> bool:
        try:
            self.validate_and_raise(node)
            return True
        except ValidationError:
            return False
