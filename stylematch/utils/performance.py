"""Performance monitoring for scoring scans and indexing runs."""

import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import psutil

from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class PerformanceMetrics:
    """One measured operation."""

    operation: str
    duration_seconds: float
    memory_mb: float
    items_processed: int = 0
    throughput: float = 0.0  # items/second


class PerformanceMonitor:
    """Collect wall time, RSS delta and throughput per named operation.

    Disabled monitors cost one attribute check per ``measure`` call, so the
    matcher and the indexing pipeline wrap their hot paths unconditionally.
    """

    def __init__(self, enabled: bool = False):
        self.metrics: Dict[str, List[PerformanceMetrics]] = {}
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Enable performance monitoring."""
        self._enabled = True
        logger.info("Performance monitoring enabled")

    def disable(self) -> None:
        """Disable performance monitoring."""
        self._enabled = False
        logger.info("Performance monitoring disabled")

    @contextmanager
    def measure(self, operation: str, items_count: int = 0):
        """Measure the enclosed block.

        Args:
            operation: Name of the operation being measured
            items_count: Number of items processed (for throughput calculation)

        Example:
            >>> monitor = PerformanceMonitor(enabled=True)
            >>> with monitor.measure("score_batch", items_count=256):
            ...     matcher.score_many(query, batch)
        """
        if not self._enabled:
            yield
            return

        process = psutil.Process()
        start_memory = process.memory_info().rss / 1024 / 1024
        start_time = time.perf_counter()

        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            memory_delta = process.memory_info().rss / 1024 / 1024 - start_memory
            throughput = items_count / duration if duration > 0 and items_count > 0 else 0.0

            metric = PerformanceMetrics(
                operation=operation,
                duration_seconds=duration,
                memory_mb=memory_delta,
                items_processed=items_count,
                throughput=throughput,
            )
            with self._lock:
                self.metrics.setdefault(operation, []).append(metric)

            log_msg = (
                f"Performance [{operation}]: "
                f"duration={duration:.3f}s, "
                f"memory={memory_delta:+.1f}MB"
            )
            if items_count > 0:
                log_msg += f", throughput={throughput:.1f} items/s"
            logger.debug(log_msg)

    def get_summary(self, operation: Optional[str] = None) -> Dict:
        """Get summary statistics for one operation, or for all of them.

        Returns:
            Dictionary with count, durations, memory and throughput, or an
            empty dict when nothing was recorded.
        """
        with self._lock:
            if operation:
                metrics = list(self.metrics.get(operation, []))
            else:
                metrics = [m for ms in self.metrics.values() for m in ms]

        if not metrics:
            return {}

        total_duration = sum(m.duration_seconds for m in metrics)
        with_items = [m for m in metrics if m.items_processed > 0]

        return {
            'count': len(metrics),
            'total_duration': total_duration,
            'avg_duration': total_duration / len(metrics),
            'min_duration': min(m.duration_seconds for m in metrics),
            'max_duration': max(m.duration_seconds for m in metrics),
            'avg_memory_mb': sum(m.memory_mb for m in metrics) / len(metrics),
            'total_items': sum(m.items_processed for m in metrics),
            'avg_throughput': (
                sum(m.throughput for m in with_items) / len(with_items) if with_items else 0.0
            ),
        }

    def print_report(self) -> None:
        """Print formatted performance report."""
        if not self.metrics:
            logger.info("No performance metrics recorded")
            return

        print("\n" + "=" * 80)
        print("PERFORMANCE REPORT")
        print("=" * 80)

        for operation in sorted(self.metrics):
            summary = self.get_summary(operation)
            print(f"\n{operation}:")
            print(f"  Calls:            {summary['count']}")
            print(f"  Total Duration:   {summary['total_duration']:.2f}s")
            print(f"  Avg Duration:     {summary['avg_duration']:.3f}s")
            print(f"  Max Duration:     {summary['max_duration']:.3f}s")
            print(f"  Avg Memory:       {summary['avg_memory_mb']:+.1f} MB")
            if summary['total_items'] > 0:
                print(f"  Total Items:      {summary['total_items']}")
                print(f"  Avg Throughput:   {summary['avg_throughput']:.1f} items/s")

        print("=" * 80 + "\n")

    def clear(self) -> None:
        """Clear all recorded metrics."""
        with self._lock:
            self.metrics.clear()

    def export_to_dict(self) -> Dict[str, List[Dict]]:
        """Export all metrics as plain dictionaries."""
        with self._lock:
            return {
                operation: [asdict(m) for m in metrics]
                for operation, metrics in self.metrics.items()
            }


_monitor = PerformanceMonitor()


def get_performance_monitor() -> PerformanceMonitor:
    """Get the process-wide performance monitor (disabled until enabled)."""
    return _monitor
