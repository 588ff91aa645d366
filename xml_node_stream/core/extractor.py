"""
Streaming node extractor.

The extractor pulls chunks from a byte source, tracks nesting depth with a
configurable list of tag rules and returns each complete element found at the
capture depth as the exact text it had in the source. Only the unconsumed
tail of the document is kept in memory, so a multi-gigabyte feed is processed
with roughly one node plus one chunk of buffer.

Examples:
    Default rules, children of the root element:
    ```python
    with FileSource("export.xml", chunk_size=64 * 1024) as source:
        extractor = NodeExtractor(source)
        while (node := extractor.next_node()) is not None:
            record = ElementTree.fromstring(node)
    ```

    Records two levels below the root, with ``<tag/>`` records:
    ```python
    extractor = NodeExtractor(source, capture_depth=2, expect_gt=True)
    nodes = list(extractor)
    ```
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Tuple, Union

from xml_node_stream.core.base import (
    OPAQUE_REGIONS,
    SELF_CLOSING_MARKER,
    OpaqueKind,
)
from xml_node_stream.core.config import ExtractorConfig, resolve_config
from xml_node_stream.core.sources import ByteSource, StreamSource

logger = logging.getLogger(__name__)

# Inside a DOCTYPE declaration: comment start, quotes, subset brackets, '>'
_DOCTYPE_SPECIAL = re.compile(rb"<!--|[\[\]\"'>]")
_COMMENT_END = b"-->"


@dataclass(frozen=True)
class _Matcher:
    """An encoded start/end pair with its depth effect."""

    start: bytes
    end: bytes
    depth_delta: int = 0
    opaque: Optional[OpaqueKind] = None


@dataclass
class _Pending:
    """A construct whose start matched but whose end is not buffered yet."""

    matcher: _Matcher
    start: int  # Absolute offset of the start delimiter
    search_from: int  # Absolute offset where the end search resumes
    quote: Optional[bytes] = None  # DOCTYPE: open quote character
    in_comment: bool = False  # DOCTYPE: inside a comment in the subset
    brackets: int = 0  # DOCTYPE: internal subset nesting


# Returned by _dispatch when the buffer ends inside a higher-priority marker
_NEED_MORE = object()


class NodeExtractor:
    """
    Pull-based extractor of complete XML nodes from a byte source.

    Positions (cursor, capture start, pending constructs) are absolute stream
    offsets. The buffer holds the bytes from ``_base`` onward; dropping its
    front never invalidates a position.
    """

    def __init__(
        self,
        source: Union[ByteSource, Any],
        config: Optional[Union[ExtractorConfig, Mapping[str, Any]]] = None,
        **options
    ):
        """
        Initialize the extractor.

        Args:
            source: A ``ByteSource``, or any object with ``read(n)``
            config: ``ExtractorConfig`` or a mapping of options
            **options: ``tag_rules``, ``capture_depth``, ``expect_gt``,
                ``encoding``; override values from ``config``

        Raises:
            ConfigurationError: If an option is unknown or invalid
            TypeError: If ``source`` cannot be read from
        """
        self.config = resolve_config(config, **options)

        if isinstance(source, ByteSource):
            self.source = source
        elif hasattr(source, "read"):
            self.source = StreamSource(source, encoding=self.config.encoding)
        else:
            raise TypeError(f"Source must be a ByteSource or have a read() method, got {type(source).__name__}")

        encoding = self.config.encoding
        opaque = [
            _Matcher(region.start.encode(encoding), region.end.encode(encoding), 0, region.kind)
            for region in OPAQUE_REGIONS
        ]
        rules = [
            _Matcher(rule.start.encode(encoding), rule.end.encode(encoding), rule.depth_delta)
            for rule in self.config.tag_rules
        ]
        # Opaque regions first, then rules in configured order
        self._matchers: Tuple[_Matcher, ...] = tuple(opaque + rules)

        starts = sorted({m.start for m in self._matchers}, key=len, reverse=True)
        self._start_pattern = re.compile(b"|".join(re.escape(s) for s in starts))
        self._max_start = len(starts[0])
        self._self_closing = SELF_CLOSING_MARKER.encode(encoding)

        self._buffer = bytearray()
        self._base = 0
        self._cursor = 0
        self._depth = 0
        self._capture_start: Optional[int] = None
        self._pending: Optional[_Pending] = None
        self._exhausted = False
        self._finished = False

        self._bytes_read = 0
        self._nodes_emitted = 0
        self._peak_buffer_size = 0
        self._last_node_span: Optional[Tuple[int, int]] = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def next_node(self) -> Optional[str]:
        """
        Return the next complete node, or ``None`` at end of stream.

        Once ``None`` has been returned every later call returns ``None``
        without reading from the source.

        Raises:
            OSError: Or whatever the source raises; the session is terminated
            UnicodeDecodeError: If the node is not valid in the configured
                encoding
        """
        if self._finished:
            return None

        while True:
            span = self._scan()
            if span is not None:
                return self._emit(*span)
            if self._exhausted:
                self._finish()
                return None
            self._fetch()

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        node = self.next_node()
        if node is None:
            raise StopIteration
        return node

    def close(self) -> None:
        """Terminate the session and close the source."""
        self._finished = True
        self._buffer = bytearray()
        self._pending = None
        self.source.close()

    def __enter__(self) -> "NodeExtractor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def bytes_read(self) -> int:
        return self._bytes_read

    @property
    def nodes_emitted(self) -> int:
        return self._nodes_emitted

    @property
    def buffer_size(self) -> int:
        """Number of bytes currently retained."""
        return len(self._buffer)

    @property
    def peak_buffer_size(self) -> int:
        """Largest number of bytes retained at once during the session."""
        return self._peak_buffer_size

    @property
    def last_node_span(self) -> Optional[Tuple[int, int]]:
        """Absolute ``(offset, length)`` in bytes of the last emitted node."""
        return self._last_node_span

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(source={self.source!r}, "
            f"capture_depth={self.config.capture_depth}, expect_gt={self.config.expect_gt})"
        )

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def _fetch(self) -> None:
        """Append the next chunk, dropping everything before the live start."""
        try:
            chunk = self.source.read()
        except Exception as e:
            self.logger.error(f"Source read failed after {self._bytes_read:,} bytes: {e}")
            self._finished = True
            self._buffer = bytearray()
            self._pending = None
            raise

        if not chunk:
            self._exhausted = True
            return

        keep_from = self._capture_start if self._capture_start is not None else self._cursor
        drop = keep_from - self._base
        if drop > 0:
            del self._buffer[:drop]
            self._base = keep_from

        self._buffer += chunk
        self._bytes_read += len(chunk)
        if len(self._buffer) > self._peak_buffer_size:
            self._peak_buffer_size = len(self._buffer)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Fetched {len(chunk):,} bytes at offset {self._bytes_read - len(chunk):,}, "
                f"buffer {len(self._buffer):,} bytes, depth {self._depth}"
            )

    def _emit(self, start: int, end: int) -> str:
        """Cut the node out of the buffer and discard up to the next unscanned byte."""
        i, j = start - self._base, end - self._base
        data = bytes(self._buffer[i:j])
        del self._buffer[:j]
        self._base = end
        # A node that fails to decode is skipped without being counted
        node = data.decode(self.config.encoding)
        self._nodes_emitted += 1
        self._last_node_span = (start, end - start)
        return node

    def _finish(self) -> None:
        """Enter the terminal state, dropping any unterminated trailing content."""
        if self._capture_start is not None or self._pending is not None:
            self.logger.debug(
                f"Dropping unterminated content at end of stream "
                f"({len(self._buffer):,} bytes buffered, depth {self._depth})"
            )
        self._finished = True
        self._buffer = bytearray()
        self._pending = None
        self._capture_start = None
        self.logger.debug(
            f"Extraction finished: {self._nodes_emitted} nodes from {self._bytes_read:,} bytes, "
            f"peak buffer {self._peak_buffer_size:,} bytes"
        )

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan(self) -> Optional[Tuple[int, int]]:
        """
        Scan the buffered bytes from the cursor.

        Returns:
            Absolute ``(start, end)`` of a completed node, or None when more
            input is needed
        """
        while True:
            if self._pending is None:
                pos = self._find_start()
                if pos is None:
                    # Keep enough of the tail to recognize a delimiter split by the chunk boundary
                    tail = self._base + len(self._buffer) - (self._max_start - 1)
                    self._cursor = max(self._cursor, tail)
                    return None

                matcher = self._dispatch(pos)
                if matcher is _NEED_MORE:
                    self._cursor = pos
                    return None
                if matcher is None:
                    self._cursor = pos + 1
                    continue

                self._pending = _Pending(matcher, pos, pos + len(matcher.start))
                self._cursor = pos

            end = self._find_end(self._pending)
            if end is None:
                return None

            pending, self._pending = self._pending, None
            self._cursor = end
            span = self._apply(pending, end)
            if span is not None:
                return span

    def _find_start(self) -> Optional[int]:
        """Absolute offset of the next start delimiter at or after the cursor."""
        match = self._start_pattern.search(self._buffer, self._cursor - self._base)
        if match is None:
            return None
        return self._base + match.start()

    def _dispatch(self, pos: int):
        """
        Pick the matcher for the construct starting at ``pos``.

        Matchers are tried in priority order. If the buffer ends inside a
        higher-priority start delimiter the decision waits for more input.
        """
        i = pos - self._base
        available = len(self._buffer) - i
        for matcher in self._matchers:
            if self._buffer.startswith(matcher.start, i):
                return matcher
            if (
                not self._exhausted
                and available < len(matcher.start)
                and matcher.start.startswith(self._buffer[i:])
            ):
                return _NEED_MORE
        return None

    def _find_end(self, pending: _Pending) -> Optional[int]:
        """Absolute offset just past the end of ``pending``, or None if not buffered."""
        if pending.matcher.opaque is OpaqueKind.DOCTYPE:
            return self._find_doctype_end(pending)

        end = pending.matcher.end
        idx = self._buffer.find(end, pending.search_from - self._base)
        if idx == -1:
            tail = self._base + len(self._buffer) - (len(end) - 1)
            pending.search_from = max(pending.search_from, tail)
            return None
        return self._base + idx + len(end)

    def _find_doctype_end(self, pending: _Pending) -> Optional[int]:
        """Find the '>' closing a DOCTYPE, skipping the internal subset, literals and comments."""
        buf = self._buffer
        i = pending.search_from - self._base

        while True:
            if pending.in_comment:
                j = buf.find(_COMMENT_END, i)
                if j == -1:
                    pending.search_from = max(pending.search_from, self._base + len(buf) - (len(_COMMENT_END) - 1))
                    return None
                pending.in_comment = False
                i = j + len(_COMMENT_END)
                continue

            if pending.quote is not None:
                j = buf.find(pending.quote, i)
                if j == -1:
                    pending.search_from = self._base + len(buf)
                    return None
                pending.quote = None
                i = j + 1
                continue

            match = _DOCTYPE_SPECIAL.search(buf, i)
            if match is None:
                # A comment start may be split across the chunk boundary
                pending.search_from = max(self._base + i, self._base + len(buf) - 3)
                return None

            j = match.start()
            token = match.group()
            i = match.end()
            if token == b"<!--":
                pending.in_comment = True
            elif token in (b'"', b"'"):
                pending.quote = token
            elif token == b"[":
                pending.brackets += 1
            elif token == b"]":
                pending.brackets = max(0, pending.brackets - 1)
            elif pending.brackets == 0:
                return self._base + j + 1

            pending.search_from = self._base + i

    def _apply(self, pending: _Pending, end: int) -> Optional[Tuple[int, int]]:
        """Apply a completed construct to the depth; return a node span if one closed."""
        matcher = pending.matcher
        if matcher.opaque is not None or matcher.depth_delta == 0:
            return None

        capture_depth = self.config.capture_depth
        if matcher.depth_delta > 0:
            if self.config.expect_gt and self._is_self_closing(pending, end):
                # Opens and closes in one step
                if self._depth == capture_depth and self._capture_start is None:
                    return pending.start, end
                return None
            if self._depth == capture_depth and self._capture_start is None:
                self._capture_start = pending.start
            self._depth += 1
            return None

        self._depth -= 1
        if self._depth == capture_depth and self._capture_start is not None:
            span = (self._capture_start, end)
            self._capture_start = None
            return span
        return None

    def _is_self_closing(self, pending: _Pending, end: int) -> bool:
        """True when the self-closing marker sits right before the end delimiter."""
        marker_at = end - len(pending.matcher.end) - len(self._self_closing)
        if marker_at < pending.start + len(pending.matcher.start):
            return False
        i = marker_at - self._base
        return self._buffer[i:i + len(self._self_closing)] == self._self_closing


def extract_nodes(source: Union[ByteSource, Any], **options) -> List[str]:
    """
    Extract every node from ``source`` into a list.

    Convenience for small inputs and tests; large documents should iterate a
    ``NodeExtractor`` instead.
    """
    with NodeExtractor(source, **options) as extractor:
        return list(extractor)
