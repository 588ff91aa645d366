"""
Core components for the XML node streaming library.

This module contains the fundamental building blocks including:
- Tag rules, node records and the exception taxonomy
- Extractor configuration and config-file loading
- Byte sources
- The streaming node extractor and the high-level streamer
"""

from xml_node_stream.core.base import (
    DEFAULT_TAG_RULES,
    ConfigurationError,
    Node,
    NodeMetadata,
    StreamerError,
    StreamingResult,
    TagRule,
)
from xml_node_stream.core.config import ExtractorConfig, load_config_file
from xml_node_stream.core.sources import (
    ByteSource,
    FileSource,
    IterableSource,
    StreamSource,
    StringSource,
)
from xml_node_stream.core.extractor import NodeExtractor, extract_nodes
from xml_node_stream.core.streaming import NodeStreamer, StreamingProgress, iter_nodes

__all__ = [
    "DEFAULT_TAG_RULES",
    "ConfigurationError",
    "Node",
    "NodeMetadata",
    "StreamerError",
    "StreamingResult",
    "TagRule",
    "ExtractorConfig",
    "load_config_file",
    "ByteSource",
    "FileSource",
    "IterableSource",
    "StreamSource",
    "StringSource",
    "NodeExtractor",
    "extract_nodes",
    "NodeStreamer",
    "StreamingProgress",
    "iter_nodes",
]
