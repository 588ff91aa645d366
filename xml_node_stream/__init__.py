"""
XML Node Stream

Splits XML documents of any size into their repeated record elements without
loading the document into memory. Depth is tracked with configurable tag rules;
comments, CDATA sections and DOCTYPE declarations are skipped as opaque regions.

Public API Examples:

Extractor:
    from xml_node_stream import NodeExtractor, FileSource
    with FileSource("export.xml", chunk_size=64 * 1024) as source:
        for node in NodeExtractor(source, capture_depth=1):
            process(node)

Streamer with node metadata:
    from xml_node_stream import NodeStreamer
    streamer = NodeStreamer(capture_depth=2, expect_gt=True)
    for node in streamer.stream_file("orphanet.xml"):
        print(node.index, node.metadata.offset, node.content)

One-shot:
    from xml_node_stream import extract_nodes
    nodes = extract_nodes(io.BytesIO(b"<r><a>1</a><a>2</a></r>"))

Validation:
    from xml_node_stream import NodeValidator
    issues = NodeValidator().validate_all(streamer.stream_file("export.xml"))
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
from xml_node_stream.core.config import ExtractorConfig, load_config_file, resolve_config
from xml_node_stream.core.sources import (
    ByteSource,
    FileSource,
    IterableSource,
    StreamSource,
    StringSource,
)
from xml_node_stream.core.extractor import NodeExtractor, extract_nodes
from xml_node_stream.core.streaming import NodeStreamer, StreamingProgress, iter_nodes
from xml_node_stream.utils.validation import NodeValidator, ValidationError

# Import logging functionality for easy access
from xml_node_stream.logging_config import (
    LogConfig,
    LogLevel,
    PerformanceRecord,
    configure_logging,
    get_logger,
    performance_records,
)

# Console logging on stderr by default; call configure_logging() to change it
configure_logging(
    level=LogLevel.NORMAL,
    console_output=True,
    file_output=False,
    collect_performance=False,
)

# Version info
__version__ = "0.1.0"

__all__ = [
    # Data model
    "DEFAULT_TAG_RULES",
    "TagRule",
    "Node",
    "NodeMetadata",
    "StreamingResult",

    # Errors
    "StreamerError",
    "ConfigurationError",
    "ValidationError",

    # Configuration
    "ExtractorConfig",
    "load_config_file",
    "resolve_config",

    # Sources
    "ByteSource",
    "FileSource",
    "IterableSource",
    "StreamSource",
    "StringSource",

    # Main interfaces
    "NodeExtractor",
    "extract_nodes",
    "NodeStreamer",
    "StreamingProgress",
    "iter_nodes",
    "NodeValidator",

    # Logging
    "configure_logging",
    "LogConfig",
    "LogLevel",
    "get_logger",
    "PerformanceRecord",
    "performance_records",

    # Version
    "__version__",
]
