"""
Byte sources feeding the node extractor.

A source hands out the document one chunk at a time. The extractor only
relies on the contract of ``ByteSource.read``:

- every call returns at least one byte unless the medium is exhausted,
  in which case it returns ``b""``
- calls are strictly sequential; bytes are never handed out twice

Sources own their underlying resources and are context managers, so callers
can release them deterministically even when iteration stops early.

Examples:
    ```python
    with FileSource("export.xml", chunk_size=64 * 1024) as source:
        for node in NodeExtractor(source, capture_depth=1):
            process(node)
    ```
"""

import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024

# Called after every non-empty read with (chunk, total_bytes_read)
ChunkCallback = Callable[[bytes, int], None]


class ByteSource(ABC):
    """
    Abstract base class for chunked byte sources.

    Subclasses implement ``_read_chunk``; this class enforces the end-of-stream
    contract, counts bytes, and runs the observation hook.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: Optional[ChunkCallback] = None,
    ):
        """
        Initialize the source.

        Args:
            chunk_size: Default number of bytes per read
            on_chunk: Optional diagnostics hook called with each chunk and the
                cumulative number of bytes read
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.on_chunk = on_chunk
        self.bytes_read = 0
        self.reads = 0
        self._exhausted = False
        self._closed = False
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def _read_chunk(self, max_bytes: int) -> bytes:
        """Return up to ``max_bytes`` bytes, or ``b""`` when exhausted."""
        raise NotImplementedError("Byte sources must implement _read_chunk()")

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        """Identifier of the underlying medium, used in node metadata."""
        return self.__class__.__name__

    @property
    def source_type(self) -> str:
        return "stream"

    @property
    def total_size(self) -> Optional[int]:
        """Total number of bytes, when the medium knows it."""
        return None

    def read(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read the next chunk.

        Args:
            max_bytes: Upper bound for this read (defaults to ``chunk_size``)

        Returns:
            A non-empty chunk, or ``b""`` once the source is exhausted
        """
        if self._exhausted or self._closed:
            return b""

        chunk = self._read_chunk(max_bytes or self.chunk_size)
        if not chunk:
            self._exhausted = True
            self.logger.debug(f"Source exhausted after {self.bytes_read:,} bytes in {self.reads} reads")
            return b""

        self.reads += 1
        self.bytes_read += len(chunk)
        if self.on_chunk is not None:
            self.on_chunk(chunk, self.bytes_read)
        return chunk

    def close(self) -> None:
        """Release the underlying resources."""
        self._closed = True

    def __enter__(self) -> "ByteSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', chunk_size={self.chunk_size})"


class StreamSource(ByteSource):
    """
    Source over any object with a ``read(n)`` method.

    Text-mode streams are encoded with ``encoding``. The stream is closed on
    ``close()`` only when ``close_stream`` is set.
    """

    def __init__(
        self,
        stream: Union[BinaryIO, io.TextIOBase],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: Optional[ChunkCallback] = None,
        encoding: str = "utf-8",
        close_stream: bool = False,
    ):
        super().__init__(chunk_size=chunk_size, on_chunk=on_chunk)
        self._stream = stream
        self.encoding = encoding
        self.close_stream = close_stream

    @property
    def name(self) -> str:
        return str(getattr(self._stream, "name", self.__class__.__name__))

    def _read_chunk(self, max_bytes: int) -> bytes:
        data = self._stream.read(max_bytes)
        if isinstance(data, str):
            data = data.encode(self.encoding)
        return data or b""

    def close(self) -> None:
        if self.close_stream and self._stream is not None and not self._closed:
            self._stream.close()
        super().close()


class FileSource(StreamSource):
    """
    Source reading a file in fixed-size chunks.

    The file is opened on the first read and closed by ``close()``.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: Optional[ChunkCallback] = None,
    ):
        """
        Initialize file source.

        Args:
            file_path: Path to the file to read
            chunk_size: Number of bytes per read
            on_chunk: Optional diagnostics hook

        Raises:
            FileNotFoundError: If the file does not exist
        """
        self.file_path = Path(file_path)
        if not self.file_path.is_file():
            raise FileNotFoundError(f"File not found: {self.file_path}")
        super().__init__(None, chunk_size=chunk_size, on_chunk=on_chunk, close_stream=True)

    @property
    def name(self) -> str:
        return str(self.file_path)

    @property
    def source_type(self) -> str:
        return "file"

    @property
    def total_size(self) -> Optional[int]:
        return self.file_path.stat().st_size

    def _read_chunk(self, max_bytes: int) -> bytes:
        if self._stream is None:
            self._stream = open(self.file_path, "rb")
            self.logger.debug(f"Opened {self.file_path} for reading ({self.chunk_size:,} byte chunks)")
        return super()._read_chunk(max_bytes)


class StringSource(ByteSource):
    """In-memory source over a ``str`` or ``bytes`` document."""

    def __init__(
        self,
        content: Union[str, bytes],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: Optional[ChunkCallback] = None,
        encoding: str = "utf-8",
    ):
        super().__init__(chunk_size=chunk_size, on_chunk=on_chunk)
        if isinstance(content, str):
            content = content.encode(encoding)
        self._content = bytes(content)
        self._position = 0

    @property
    def source_type(self) -> str:
        return "content"

    @property
    def total_size(self) -> Optional[int]:
        return len(self._content)

    def _read_chunk(self, max_bytes: int) -> bytes:
        chunk = self._content[self._position:self._position + max_bytes]
        self._position += len(chunk)
        return chunk

    def close(self) -> None:
        self._content = b""
        super().close()


class IterableSource(ByteSource):
    """
    Source over an iterable of ``bytes`` or ``str`` pieces.

    Useful for network responses and other producers that already deliver the
    document in pieces. Empty pieces are skipped, and pieces larger than the
    requested size are handed out across several reads.
    """

    def __init__(
        self,
        pieces: Iterable[Union[str, bytes]],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: Optional[ChunkCallback] = None,
        encoding: str = "utf-8",
    ):
        super().__init__(chunk_size=chunk_size, on_chunk=on_chunk)
        self._pieces: Iterator[Union[str, bytes]] = iter(pieces)
        self.encoding = encoding
        self._pending = b""

    @property
    def source_type(self) -> str:
        return "iterator"

    def _read_chunk(self, max_bytes: int) -> bytes:
        while not self._pending:
            piece = next(self._pieces, None)
            if piece is None:
                return b""
            if isinstance(piece, str):
                piece = piece.encode(self.encoding)
            self._pending = bytes(piece)

        chunk, self._pending = self._pending[:max_bytes], self._pending[max_bytes:]
        return chunk

    def close(self) -> None:
        close = getattr(self._pieces, "close", None)
        if close is not None and not self._closed:
            close()
        self._pending = b""
        super().close()
