"""
Triangle area statistics computed in the background.

The triangle range is split into W contiguous batches (W = min(triangle count,
worker count)); each batch is reduced on a thread pool and a separate
aggregator thread combines the partial results and publishes them through the
handle returned by ``begin_statistics``. Callers poll the handle (or register
``on_done``) instead of blocking.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import GeometryRecord
from .logging_utils import log_once
from .normals import face_normals
from .runtime_defaults import DEFAULTS

_LOGGER = logging.getLogger(__name__)

# Reported as min_area when no triangle has a positive area. It is not a
# measurement; check TriangleStatistics.has_min_area before displaying it.
NO_MIN_AREA = math.inf

_BEGIN_LOCK = threading.Lock()


class StatisticsBusyError(RuntimeError):
    """A statistics computation for this record is still running."""


@dataclass(frozen=True)
class TriangleStatistics:
    """
    Attributes:
        min_area: smallest strictly positive triangle area (NO_MIN_AREA if none)
        max_area: largest triangle area, zero-area triangles included
        avg_area: sum of all areas / triangle count (0 for an empty mesh)
    """
    min_area: float = NO_MIN_AREA
    max_area: float = 0.0
    avg_area: float = 0.0

    @property
    def has_min_area(self) -> bool:
        return math.isfinite(self.min_area)


@dataclass(frozen=True)
class StatisticsStatus:
    pending: bool
    statistics: Optional[TriangleStatistics] = None
    error: Optional[BaseException] = None

    @property
    def ready(self) -> bool:
        return not self.pending


@dataclass(frozen=True)
class _BatchResult:
    min_area: float
    max_area: float
    sum_area: float


class StatisticsHandle:
    """Result slot of one statistics computation."""

    def __init__(self, n_triangles: int, n_workers: int):
        self.n_triangles = int(n_triangles)
        self.n_workers = int(n_workers)
        self._future: Future = Future()

    def done(self) -> bool:
        return self._future.done()

    def poll(self) -> StatisticsStatus:
        """Current state without blocking."""
        if not self._future.done():
            return StatisticsStatus(pending=True)
        error = self._future.exception()
        if error is not None:
            return StatisticsStatus(pending=False, error=error)
        return StatisticsStatus(pending=False, statistics=self._future.result())

    def wait(self, timeout: Optional[float] = None) -> TriangleStatistics:
        """
        Block until the result is published.

        Raises:
            concurrent.futures.TimeoutError: not finished within ``timeout``
            Exception: whatever a batch worker raised
        """
        return self._future.result(timeout=timeout)

    def add_done_callback(self, fn: Callable[[TriangleStatistics], None]) -> None:
        def _notify(future: Future) -> None:
            if future.exception() is None:
                fn(future.result())

        self._future.add_done_callback(_notify)

    def _publish(self, stats: TriangleStatistics) -> None:
        self._future.set_result(stats)

    def _fail(self, error: BaseException) -> None:
        self._future.set_exception(error)


def poll(handle: StatisticsHandle) -> StatisticsStatus:
    return handle.poll()


def batch_bounds(n_triangles: int, n_workers: int) -> List[Tuple[int, int]]:
    """
    Balanced contiguous triangle ranges; sizes differ by at most one.

    Batch i covers [i*T//W, (i+1)*T//W).
    """
    t = int(n_triangles)
    w = int(n_workers)
    if w <= 0:
        return []
    return [(i * t // w, (i + 1) * t // w) for i in range(w)]


def resolve_worker_count(n_triangles: int, max_workers: Optional[int] = None) -> int:
    if max_workers is None:
        units = DEFAULTS.statistics_workers
    else:
        units = int(max_workers)
        if units < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
    if units == 1 and n_triangles > 1:
        log_once(
            _LOGGER,
            "statistics.single_worker",
            logging.INFO,
            "Statistics running on a single worker (no parallelism available or configured)",
        )
    return min(int(n_triangles), units)


def triangle_areas(positions: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """(T,) areas, 0.5 * |cross(A - B, C - B)|."""
    return 0.5 * np.linalg.norm(face_normals(positions, faces), axis=1)


def _reduce_batch(positions: np.ndarray, faces: np.ndarray, start: int, end: int) -> _BatchResult:
    areas = triangle_areas(positions, faces[start:end])
    if areas.size == 0:
        return _BatchResult(NO_MIN_AREA, 0.0, 0.0)

    positive = areas[areas > 0.0]
    return _BatchResult(
        min_area=float(positive.min()) if positive.size else NO_MIN_AREA,
        max_area=float(areas.max()),
        sum_area=float(areas.sum()),
    )


def _combine(results: Sequence[_BatchResult], n_triangles: int) -> TriangleStatistics:
    if n_triangles <= 0:
        return TriangleStatistics()
    return TriangleStatistics(
        min_area=min((r.min_area for r in results), default=NO_MIN_AREA),
        max_area=max((r.max_area for r in results), default=0.0),
        avg_area=math.fsum(r.sum_area for r in results) / n_triangles,
    )


def _aggregate(futures: Sequence[Future], handle: StatisticsHandle, started: float) -> None:
    try:
        results = [f.result() for f in futures]
    except Exception as e:
        _LOGGER.error("Triangle statistics failed", exc_info=True)
        handle._fail(e)
        return

    stats = _combine(results, handle.n_triangles)
    _LOGGER.debug(
        "Triangle statistics: %d triangles, %d workers, %.3fs (min=%g max=%g avg=%g)",
        handle.n_triangles,
        handle.n_workers,
        time.perf_counter() - started,
        stats.min_area,
        stats.max_area,
        stats.avg_area,
    )
    handle._publish(stats)


def begin_statistics(
    record: GeometryRecord,
    *,
    max_workers: Optional[int] = None,
    on_done: Optional[Callable[[TriangleStatistics], None]] = None,
) -> StatisticsHandle:
    """
    Start computing area statistics for ``record`` and return immediately.

    The workers read a snapshot of the record's buffers, so the record can be
    used (or even subdivided) while the computation runs; the result always
    describes the topology at call time.

    Args:
        record: geometry to measure
        max_workers: worker cap (default: DEFAULTS.statistics_workers)
        on_done: called with the statistics on the aggregator thread

    Raises:
        StatisticsBusyError: a previous computation for ``record`` is pending
    """
    record.check_invariants()
    started = time.perf_counter()

    with _BEGIN_LOCK:
        if record.statistics_pending:
            raise StatisticsBusyError("Statistics already being calculated for this mesh")

        positions = record.positions.copy()
        faces = record.faces.copy()
        n_triangles = len(faces)
        n_workers = resolve_worker_count(n_triangles, max_workers)

        handle = StatisticsHandle(n_triangles, n_workers)
        record._statistics_handle = handle

    if on_done is not None:
        handle.add_done_callback(on_done)

    if n_workers == 0:
        handle._publish(TriangleStatistics())
        return handle

    executor = ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="trigeom-stats")
    futures = [
        executor.submit(_reduce_batch, positions, faces, start, end)
        for start, end in batch_bounds(n_triangles, n_workers)
    ]
    executor.shutdown(wait=False)

    aggregator = threading.Thread(
        target=_aggregate,
        args=(futures, handle, started),
        name="trigeom-stats-aggregate",
        daemon=True,
    )
    aggregator.start()
    return handle
