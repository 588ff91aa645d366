"""
Benchmarking for streaming node extraction.

Measures time, process memory and the extractor's own buffer high-water mark
for a document across several chunk sizes, so the memory bound of the
streaming design can be checked on real feeds.
"""

import gc
import json
import logging
import platform
import sys
import time
import tracemalloc
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import psutil
import yaml

from xml_node_stream.core.config import ExtractorConfig, resolve_config
from xml_node_stream.core.extractor import NodeExtractor
from xml_node_stream.core.sources import FileSource
from xml_node_stream.logging_config import performance_log

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZES = (1024, 16 * 1024, 256 * 1024)


@dataclass
class PerformanceMetrics:
    """Performance metrics for a single extraction run."""
    file_path: str
    file_size: int
    chunk_size: int
    processing_time: float
    memory_usage_mb: float
    peak_memory_mb: float
    peak_buffer_size: int
    nodes_extracted: int
    max_node_size: int
    throughput_mb_per_sec: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class BenchmarkResult:
    """Results from a complete benchmark run."""
    test_name: str
    timestamp: str
    system_info: Dict[str, Any]
    config: Dict[str, Any]
    runs: List[PerformanceMetrics] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "test_name": self.test_name,
            "timestamp": self.timestamp,
            "system_info": self.system_info,
            "config": self.config,
            "runs": [run.to_dict() for run in self.runs],
        }

    def save(self, output_path: Union[str, Path]) -> Path:
        """Save as JSON, or YAML when the suffix is .yaml/.yml."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            if output_path.suffix.lower() in [".yaml", ".yml"]:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)
        return output_path


class StreamerBenchmark:
    """
    Benchmark suite for node extraction.

    Features:
    - Wall-clock time and throughput
    - RSS delta (psutil) and Python allocation peak (tracemalloc)
    - Extractor buffer high-water mark against the largest node
    """

    def __init__(
        self,
        enable_memory_profiling: bool = True,
        config: Optional[Union[ExtractorConfig, Dict[str, Any]]] = None,
        **options
    ):
        """
        Initialize benchmarking suite.

        Args:
            enable_memory_profiling: Track Python allocations with tracemalloc
            config: Extractor configuration or option mapping
            **options: Extractor options
        """
        self.enable_memory_profiling = enable_memory_profiling
        self.config = resolve_config(config, **options)

        self.logger = logging.getLogger(__name__)
        self.process = psutil.Process()

    def get_system_info(self) -> Dict[str, Any]:
        """Get system information for the report."""
        return {
            "cpu_count": psutil.cpu_count(),
            "memory_total_gb": psutil.virtual_memory().total / (1024**3),
            "memory_available_gb": psutil.virtual_memory().available / (1024**3),
            "platform": platform.system(),
            "python_version": sys.version,
        }

    def benchmark_file(
        self,
        file_path: Union[str, Path],
        chunk_sizes: Sequence[int] = DEFAULT_CHUNK_SIZES,
        test_name: Optional[str] = None,
    ) -> BenchmarkResult:
        """
        Run one extraction per chunk size over a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        result = BenchmarkResult(
            test_name=test_name or file_path.name,
            timestamp=datetime.now().isoformat(),
            system_info=self.get_system_info(),
            config=self.config.to_dict(),
        )

        for chunk_size in chunk_sizes:
            metrics = self._measure_single_run(file_path, chunk_size)
            result.runs.append(metrics)
            self.logger.info(
                f"📊 {file_path.name} @ {chunk_size:,} B chunks: {metrics.nodes_extracted} nodes, "
                f"{metrics.processing_time:.3f}s, peak buffer {metrics.peak_buffer_size:,} B"
            )

        return result

    def _measure_single_run(self, file_path: Path, chunk_size: int) -> PerformanceMetrics:
        """Measure a single extraction with full profiling."""
        gc.collect()
        if self.enable_memory_profiling:
            tracemalloc.start()

        initial_memory = self.process.memory_info().rss / (1024 * 1024)
        start_time = time.perf_counter()

        nodes = 0
        max_node_size = 0
        try:
            with NodeExtractor(FileSource(file_path, chunk_size=chunk_size), self.config) as extractor:
                for _ in extractor:
                    nodes += 1
                    max_node_size = max(max_node_size, extractor.last_node_span[1])
                peak_buffer_size = extractor.peak_buffer_size
                bytes_read = extractor.bytes_read
        finally:
            processing_time = time.perf_counter() - start_time
            final_memory = self.process.memory_info().rss / (1024 * 1024)
            peak_memory = final_memory - initial_memory
            if self.enable_memory_profiling:
                _, peak = tracemalloc.get_traced_memory()
                peak_memory = peak / (1024 * 1024)
                tracemalloc.stop()

        performance_log("extract_file", processing_time, nodes=nodes, bytes_read=bytes_read, chunk_size=chunk_size)

        throughput = 0.0
        if processing_time > 0:
            throughput = (bytes_read / (1024 * 1024)) / processing_time

        return PerformanceMetrics(
            file_path=str(file_path),
            file_size=file_path.stat().st_size,
            chunk_size=chunk_size,
            processing_time=processing_time,
            memory_usage_mb=final_memory - initial_memory,
            peak_memory_mb=peak_memory,
            peak_buffer_size=peak_buffer_size,
            nodes_extracted=nodes,
            max_node_size=max_node_size,
            throughput_mb_per_sec=throughput,
        )
