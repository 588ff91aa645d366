"""
Base data model for the XML node streaming library.

This module defines the tag rule records that drive depth tracking, the
opaque-region markers that are skipped without depth scanning, the node
records yielded by the high-level streamer, and the exception taxonomy used
throughout the library.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class StreamerError(Exception):
    """Base class for all errors raised by the library."""
    pass


class ConfigurationError(StreamerError, ValueError):
    """Raised when an extraction session is configured with invalid options."""
    pass


@dataclass(frozen=True)
class TagRule:
    """
    One category of markup construct.

    A rule is a ``(start, end, depth_delta)`` triple. When ``start`` matches at
    the scan position, the extractor looks for ``end`` and applies
    ``depth_delta`` to the current nesting depth.

    Examples:
        ```python
        TagRule("</", ">", -1)   # closing tag
        TagRule("<?", "?>", 0)   # processing instruction
        ```
    """

    start: str
    end: str
    depth_delta: int

    def __post_init__(self):
        if not isinstance(self.start, str) or not self.start:
            raise ConfigurationError("Tag rule start delimiter must be a non-empty string")
        if not isinstance(self.end, str) or not self.end:
            raise ConfigurationError("Tag rule end delimiter must be a non-empty string")
        if isinstance(self.depth_delta, bool) or self.depth_delta not in (-1, 0, 1):
            raise ConfigurationError(
                f"Tag rule depth delta must be -1, 0 or 1, got {self.depth_delta!r}"
            )

    @classmethod
    def from_value(cls, value: Any) -> "TagRule":
        """Build a rule from a ``TagRule`` or a 3-item sequence."""
        if isinstance(value, TagRule):
            return value
        if isinstance(value, (str, bytes)) or not hasattr(value, "__len__") or len(value) != 3:
            raise ConfigurationError(
                f"Tag rule must be a (start, end, depth_delta) triple, got {value!r}"
            )
        start, end, depth_delta = value
        return cls(start, end, depth_delta)

    def to_list(self) -> List[Any]:
        return [self.start, self.end, self.depth_delta]


DEFAULT_TAG_RULES: Tuple[TagRule, ...] = (
    TagRule("<?", "?>", 0),   # processing instruction
    TagRule("</", ">", -1),   # closing tag
    TagRule("<", ">", 1),     # opening tag
)

# Marker placed immediately before the end delimiter of a self-closing tag
SELF_CLOSING_MARKER = "/"


class OpaqueKind(Enum):
    """Lexical spans skipped atomically during depth scanning."""

    COMMENT = "comment"
    CDATA = "cdata"
    DOCTYPE = "doctype"


@dataclass(frozen=True)
class OpaqueRegion:
    """Start/end markers of an opaque region."""

    kind: OpaqueKind
    start: str
    end: str


# Checked before any tag rule, in this order
OPAQUE_REGIONS: Tuple[OpaqueRegion, ...] = (
    OpaqueRegion(OpaqueKind.COMMENT, "<!--", "-->"),
    OpaqueRegion(OpaqueKind.CDATA, "<![CDATA[", "]]>"),
    OpaqueRegion(OpaqueKind.DOCTYPE, "<!DOCTYPE", ">"),
)


@dataclass
class NodeMetadata:
    """
    Positional and source information for an extracted node.

    Offsets and lengths are measured in bytes of the source, so a node can be
    located again with a plain seek.
    """

    source: str  # filename or identifier
    source_type: str = "file"  # file, content, iterator, stream
    offset: Optional[int] = None  # Absolute byte offset of the first byte
    length: Optional[int] = None  # Length in bytes
    encoding: Optional[str] = None
    depth: Optional[int] = None  # Capture depth the node was taken at
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary format."""
        result = {}
        for key, value in self.__dict__.items():
            if value is not None:
                result[key] = value
        return result


@dataclass
class Node:
    """
    One complete element span at the configured capture depth.

    ``content`` is the exact text of the span as it appeared in the source,
    not re-serialized.
    """

    content: str
    index: int
    metadata: NodeMetadata
    size: Optional[int] = None

    def __post_init__(self):
        if self.size is None and self.content is not None:
            self.size = len(self.content)

    @property
    def id(self) -> str:
        return f"node_{self.index}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "index": self.index,
            "content": self.content,
            "size": self.size,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class StreamingResult:
    """
    Complete result of streaming a source into memory.

    Contains the extracted nodes along with processing statistics.
    """

    nodes: List[Node]
    total_nodes: int = field(init=False)
    processing_time: Optional[float] = None
    source_info: Optional[Dict[str, Any]] = None
    bytes_read: int = 0
    peak_buffer_size: int = 0

    avg_node_size: Optional[float] = None
    max_node_size: Optional[int] = None

    def __post_init__(self):
        self.total_nodes = len(self.nodes)
        sizes = [node.metadata.length for node in self.nodes if node.metadata.length is not None]
        if sizes:
            self.avg_node_size = sum(sizes) / len(sizes)
            self.max_node_size = max(sizes)

    def get_summary_stats(self) -> Dict[str, Any]:
        """Get summary statistics about the streaming run."""
        return {
            "total_nodes": self.total_nodes,
            "avg_node_size": self.avg_node_size,
            "max_node_size": self.max_node_size,
            "bytes_read": self.bytes_read,
            "peak_buffer_size": self.peak_buffer_size,
            "processing_time": self.processing_time,
        }
