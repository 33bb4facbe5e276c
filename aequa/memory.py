"""
Expression pool and memory bookkeeping.

MemoryManager is the hash-consing pool: create_shared() returns a handle
to an existing node when a structurally equal one is already pooled, and
pools the new node otherwise. The pool's entries do not count as holders,
so an entry whose handles have all been released is dead and cleanup()
drops it.

Managers are plain objects, one per session or thread. Nothing here is
global and nothing here locks.
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from . import config
from .logging_config import get_logger
from .shared import ExprCell, SharedExpression

logger = get_logger("memory")


@dataclass
class MemoryConfig:
    """Pool sizing and cleanup cadence."""

    enable_sharing: bool = config.ENABLE_SHARING
    max_expression_cache_size: int = config.MAX_EXPRESSION_CACHE_SIZE
    cleanup_threshold: int = config.CLEANUP_THRESHOLD_BYTES
    cleanup_interval: float = config.CLEANUP_INTERVAL


@dataclass
class MemoryStats:
    """Snapshot of pool bookkeeping."""

    active_expressions: int = 0
    shared_expressions: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cow_triggers: int = 0
    estimated_memory_usage: int = 0
    last_updated: float = field(default_factory=time.time)

    def hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total else 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


class MemoryManager:
    """
    Hash-consing pool of expression nodes.

    Example:
        manager = MemoryManager()
        a = manager.create_shared(Variable("x"))
        b = manager.create_shared(Variable("x"))
        a.ptr_eq(b)                   # => True
        manager.get_stats().cache_hits  # => 1
    """

    def __init__(self, memory_config: Optional[MemoryConfig] = None):
        self.config = memory_config or MemoryConfig()
        self._pool: Dict[int, List[ExprCell]] = {}
        self._size = 0
        self._hits = 0
        self._misses = 0
        self._cow_triggers = 0
        self._last_cleanup = time.monotonic()

    # ============================================================
    # Pool
    # ============================================================

    def create_shared(self, expr) -> SharedExpression:
        """Handle to a pooled node structurally equal to expr.

        A hash match is confirmed structurally before it counts as a hit.
        """
        if not self.config.enable_sharing:
            self._misses += 1
            return SharedExpression.from_cell(ExprCell(expr, owner=self))

        key = hash(expr)
        bucket = self._pool.get(key)
        if bucket:
            for cell in bucket:
                if cell.value == expr:
                    self._hits += 1
                    return SharedExpression.from_cell(cell)

        self._misses += 1
        cell = ExprCell(expr, owner=self)
        if self._size >= self.config.max_expression_cache_size:
            self.cleanup()
        if self._size < self.config.max_expression_cache_size:
            cell.pooled = True
            self._pool.setdefault(key, []).append(cell)
            self._size += 1
        return SharedExpression.from_cell(cell)

    def lookup(self, expr) -> Optional[SharedExpression]:
        """Handle to an already pooled equal node, without counting a hit or miss."""
        for cell in self._pool.get(hash(expr), ()):
            if cell.value == expr:
                return SharedExpression.from_cell(cell)
        return None

    def record_hit(self) -> None:
        self._hits += 1

    def record_miss(self) -> None:
        self._misses += 1

    def record_cow(self) -> None:
        self._cow_triggers += 1

    def __len__(self) -> int:
        return self._size

    def __contains__(self, expr) -> bool:
        return any(cell.value == expr for cell in self._pool.get(hash(expr), ()))

    # ============================================================
    # Maintenance
    # ============================================================

    def cleanup(self) -> int:
        """Drop entries no handle refers to any more.

        A dropped parent releases its children only once it is freed, so
        sweeps repeat until one removes nothing.

        Returns:
            Number of entries removed.
        """
        removed = 0
        while True:
            swept = self._sweep()
            if not swept:
                break
            removed += swept
        self._last_cleanup = time.monotonic()
        logger.debug("pool cleanup removed %d entries, %d remain", removed, self._size)
        return removed

    def _sweep(self) -> int:
        removed = 0
        for key in list(self._pool):
            bucket = self._pool[key]
            live = [cell for cell in bucket if cell.refs > 0]
            for cell in bucket:
                if cell.refs <= 0:
                    cell.pooled = False
            removed += len(bucket) - len(live)
            if live:
                self._pool[key] = live
            else:
                del self._pool[key]
        self._size -= removed
        return removed

    def clear(self) -> None:
        """Forget every entry and reset the counters."""
        for bucket in self._pool.values():
            for cell in bucket:
                cell.pooled = False
        self._pool.clear()
        self._size = 0
        self._hits = self._misses = self._cow_triggers = 0

    def estimated_memory_usage(self) -> int:
        """Heuristic byte estimate over the live pooled nodes."""
        return sum(cell.value.estimated_size()
                   for bucket in self._pool.values()
                   for cell in bucket if cell.refs > 0)

    def get_stats(self) -> MemoryStats:
        cells = [cell for bucket in self._pool.values() for cell in bucket]
        return MemoryStats(
            active_expressions=sum(1 for cell in cells if cell.refs > 0),
            shared_expressions=sum(1 for cell in cells if cell.refs > 1),
            cache_hits=self._hits,
            cache_misses=self._misses,
            cow_triggers=self._cow_triggers,
            estimated_memory_usage=self.estimated_memory_usage(),
        )

    def update_stats(self) -> MemoryStats:
        """Current stats, running cleanup first when it is due.

        Cleanup is due once cleanup_interval has elapsed since the last one
        or when the estimated footprint passes cleanup_threshold.
        """
        elapsed = time.monotonic() - self._last_cleanup
        if (elapsed >= self.config.cleanup_interval
                or self.estimated_memory_usage() > self.config.cleanup_threshold):
            self.cleanup()
        return self.get_stats()

    def __repr__(self) -> str:
        return f"MemoryManager({self._size} pooled, hits={self._hits}, misses={self._misses})"


class MemoryMonitor:
    """Interval-gated view over a MemoryManager for monitoring callers.

    Example:
        monitor = MemoryMonitor(manager, interval=5.0)
        stats = monitor.check()   # None until 5 seconds have passed
    """

    def __init__(self, manager: MemoryManager, interval: float = config.MONITOR_INTERVAL):
        self.manager = manager
        self.interval = interval
        self._enabled = True
        self._last_check = time.monotonic()

    def check(self) -> Optional[MemoryStats]:
        """Fresh stats when the interval has elapsed, else None."""
        if not self._enabled:
            return None
        now = time.monotonic()
        if now - self._last_check < self.interval:
            return None
        self._last_check = now
        stats = self.manager.update_stats()
        logger.debug("memory check: %d active, %d shared, ~%d bytes",
                     stats.active_expressions, stats.shared_expressions,
                     stats.estimated_memory_usage)
        return stats

    def stats(self) -> MemoryStats:
        return self.manager.get_stats()

    def cleanup(self) -> int:
        return self.manager.cleanup()

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled
