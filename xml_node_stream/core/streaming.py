"""
High-level streaming of XML nodes from files, in-memory content and iterators.

This module wraps ``NodeExtractor`` with source acquisition, node metadata and
progress reporting. Sources are always acquired with ``with``, so they are
released when the caller stops iterating early or an error is raised.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Union

from xml_node_stream.core.base import Node, NodeMetadata, StreamingResult
from xml_node_stream.core.config import ExtractorConfig, resolve_config
from xml_node_stream.core.extractor import NodeExtractor
from xml_node_stream.core.sources import (
    DEFAULT_CHUNK_SIZE,
    ByteSource,
    FileSource,
    IterableSource,
    StringSource,
)
from xml_node_stream.logging_config import performance_log

logger = logging.getLogger(__name__)


@dataclass
class StreamingProgress:
    """Progress information for a streaming run."""
    source: str
    total_size: Optional[int]
    processed_bytes: int
    nodes_generated: int
    throughput_mbps: float
    elapsed_time: float
    eta_seconds: Optional[float]
    status: str  # "processing", "completed", "error"
    error_message: Optional[str] = None

    @property
    def progress_percentage(self) -> Optional[float]:
        """Get progress as percentage (0-100), when the total size is known."""
        if self.total_size is None:
            return None
        if self.total_size == 0:
            return 100.0
        return min(100.0, (self.processed_bytes / self.total_size) * 100)

    @property
    def nodes_per_second(self) -> float:
        if self.elapsed_time == 0:
            return 0.0
        return self.nodes_generated / self.elapsed_time


class NodeStreamer:
    """
    Streams ``Node`` records out of XML documents of any size.

    Examples:
        Basic streaming:
        ```python
        streamer = NodeStreamer(capture_depth=1)
        for node in streamer.stream_file("export.xml"):
            process(node.content)
        ```

        With progress reporting:
        ```python
        streamer = NodeStreamer(
            chunk_size=256 * 1024,
            progress_callback=lambda p: print(f"{p.nodes_generated} nodes"),
            capture_depth=2,
            expect_gt=True,
        )
        result = streamer.collect_all("orphanet.xml")
        ```
    """

    def __init__(
        self,
        chunk_size: int = 64 * 1024,
        progress_callback: Optional[Callable[[StreamingProgress], None]] = None,
        progress_update_interval: int = 1000,  # Update every N nodes
        config: Optional[Union[ExtractorConfig, Dict[str, Any]]] = None,
        **options
    ):
        """
        Initialize node streamer.

        Args:
            chunk_size: Number of bytes read from the source per request
            progress_callback: Optional callback for progress updates
            progress_update_interval: Report progress every N nodes
            config: Extractor configuration or option mapping
            **options: Extractor options (``capture_depth``, ``expect_gt``,
                ``tag_rules``, ``encoding``)

        Raises:
            ConfigurationError: If the extractor options are invalid
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if progress_update_interval <= 0:
            raise ValueError("progress_update_interval must be positive")

        self.config = resolve_config(config, **options)

        self.chunk_size = chunk_size
        self.progress_callback = progress_callback
        self.progress_update_interval = progress_update_interval

        self._current_progress: Optional[StreamingProgress] = None
        self._start_time = 0.0
        self._last_extractor: Optional[NodeExtractor] = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def stream_file(self, file_path: Union[str, Path]) -> Iterator[Node]:
        """
        Stream nodes from a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            OSError: If the file cannot be read
        """
        file_path = Path(file_path)

        if not file_path.exists():
            self.logger.error(f"🚫 Streaming failed: File not found: {file_path}")
            raise FileNotFoundError(f"File not found: {file_path}")

        self.logger.info(f"🚀 Starting streaming: {file_path} ({file_path.stat().st_size:,} bytes)")
        yield from self.stream_source(FileSource(file_path, chunk_size=self.chunk_size))

    def stream_content(self, content: Union[str, bytes]) -> Iterator[Node]:
        """Stream nodes from an in-memory document."""
        source = StringSource(content, chunk_size=self.chunk_size, encoding=self.config.encoding)
        yield from self.stream_source(source)

    def stream_from_iterator(self, content_iterator: Iterable[Union[str, bytes]]) -> Iterator[Node]:
        """
        Stream nodes from an iterable of document pieces.

        This is useful for content that arrives from network connections or
        other producers that already deliver the document piecewise.
        """
        source = IterableSource(content_iterator, chunk_size=self.chunk_size, encoding=self.config.encoding)
        yield from self.stream_source(source)

    def stream_source(self, source: ByteSource) -> Iterator[Node]:
        """
        Stream nodes from any byte source; the source is closed afterwards.

        Yields:
            ``Node`` records in document order
        """
        self._start_time = time.time()
        total_size = source.total_size

        with source, NodeExtractor(source, self.config) as extractor:
            self._last_extractor = extractor
            self._update_progress(source, extractor, total_size, "processing")
            try:
                index = 0
                for content in extractor:
                    offset, length = extractor.last_node_span
                    yield Node(
                        content=content,
                        index=index,
                        metadata=NodeMetadata(
                            source=source.name,
                            source_type=source.source_type,
                            offset=offset,
                            length=length,
                            encoding=self.config.encoding,
                            depth=self.config.capture_depth,
                        ),
                    )
                    index += 1
                    if index % self.progress_update_interval == 0:
                        self._update_progress(source, extractor, total_size, "processing")
            except Exception as e:
                self._update_progress(source, extractor, total_size, "error", error_message=str(e))
                self.logger.error(f"💥 Streaming failed: {e}")
                raise

            self._update_progress(source, extractor, total_size, "completed")
            elapsed = time.time() - self._start_time
            self.logger.info(f"✅ Completed streaming: {extractor.nodes_emitted} nodes in {elapsed:.2f}s")
            performance_log(
                "stream_source",
                elapsed,
                nodes=extractor.nodes_emitted,
                bytes_read=extractor.bytes_read,
                source=source.name,
            )

    def collect_all(self, file_path: Union[str, Path]) -> StreamingResult:
        """
        Collect all streamed nodes of a file into a ``StreamingResult``.

        This is a convenience for when the whole node list fits in memory.
        """
        start_time = time.time()
        nodes = list(self.stream_file(file_path))
        processing_time = time.time() - start_time

        extractor = self._last_extractor
        return StreamingResult(
            nodes=nodes,
            processing_time=processing_time,
            source_info={"source": str(file_path), "config": self.config.to_dict()},
            bytes_read=extractor.bytes_read if extractor else 0,
            peak_buffer_size=extractor.peak_buffer_size if extractor else 0,
        )

    @property
    def progress(self) -> Optional[StreamingProgress]:
        """Most recent progress snapshot, if a callback is configured."""
        return self._current_progress

    def _update_progress(
        self,
        source: ByteSource,
        extractor: NodeExtractor,
        total_size: Optional[int],
        status: str,
        error_message: Optional[str] = None
    ) -> None:
        """Update progress tracking and trigger callback if provided."""
        if not self.progress_callback:
            return

        elapsed_time = time.time() - self._start_time
        processed = extractor.bytes_read

        throughput_mbps = 0.0
        if elapsed_time > 0 and processed > 0:
            throughput_mbps = (processed / (1024 * 1024)) / elapsed_time

        eta_seconds = None
        if throughput_mbps > 0 and total_size:
            remaining_mb = max(0, total_size - processed) / (1024 * 1024)
            eta_seconds = remaining_mb / throughput_mbps

        self._current_progress = StreamingProgress(
            source=source.name,
            total_size=total_size,
            processed_bytes=processed,
            nodes_generated=extractor.nodes_emitted,
            throughput_mbps=throughput_mbps,
            elapsed_time=elapsed_time,
            eta_seconds=eta_seconds,
            status=status,
            error_message=error_message,
        )

        try:
            self.progress_callback(self._current_progress)
        except Exception as e:
            self.logger.warning(f"Progress callback failed: {e}")


def iter_nodes(
    file_path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    **options
) -> Iterator[str]:
    """
    Yield node strings from a file.

    The file is closed when the generator is exhausted, closed or collected.
    """
    with FileSource(file_path, chunk_size=chunk_size) as source:
        yield from NodeExtractor(source, **options)
