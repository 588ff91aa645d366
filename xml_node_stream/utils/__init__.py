"""
Utility modules for working with extracted nodes.
"""

from xml_node_stream.utils.validation import NodeValidator, ValidationError

__all__ = [
    "NodeValidator",
    "ValidationError",
]
