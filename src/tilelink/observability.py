"""Run-level statistics for adjacency inference.

Counters are aggregated in-process and can be printed by the CLI or
exported as JSON next to the adjacency report.
"""

from __future__ import annotations

import json
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tilelink.models import MatchConfig
from tilelink.tiles import Direction, TileCollection


@dataclass
class InferenceStats:
    """Counters collected during one :func:`~tilelink.matcher.infer_neighbors` run."""

    tile_count: int = 0
    tile_size: int = 0
    started_at_epoch: float = field(default_factory=time.time)
    finished_at_epoch: float | None = None

    _pairs_compared: int = 0
    _degenerate_comparisons: int = 0
    _matches_by_direction: Counter[str] = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_partition(
        self,
        pairs: int,
        degenerate: int,
        matches: dict[Direction, int],
    ) -> None:
        """Fold the counts from one tile's partition into the totals."""
        with self._lock:
            self._pairs_compared += pairs
            self._degenerate_comparisons += degenerate
            for direction, count in matches.items():
                self._matches_by_direction[Direction(direction).value] += count

    def finish(self) -> None:
        with self._lock:
            if self.finished_at_epoch is None:
                self.finished_at_epoch = time.time()

    @property
    def pairs_compared(self) -> int:
        with self._lock:
            return self._pairs_compared

    @property
    def degenerate_comparisons(self) -> int:
        with self._lock:
            return self._degenerate_comparisons

    @property
    def total_matches(self) -> int:
        with self._lock:
            return sum(self._matches_by_direction.values())

    def matches(self, direction: Direction | str) -> int:
        with self._lock:
            return self._matches_by_direction[Direction(direction).value]

    def snapshot(self) -> dict[str, Any]:
        """Build a JSON-serializable view of the collected counters."""
        with self._lock:
            end = self.finished_at_epoch
            duration = max(
                0.0, (end if end is not None else time.time()) - self.started_at_epoch
            )
            return {
                "tile_count": self.tile_count,
                "tile_size": self.tile_size,
                "pairs_compared": self._pairs_compared,
                "degenerate_comparisons": self._degenerate_comparisons,
                "matches_by_direction": {
                    d.value: self._matches_by_direction[d.value] for d in Direction
                },
                "started_at_epoch": self.started_at_epoch,
                "finished_at_epoch": end,
                "duration_seconds": duration,
            }


def write_run_summary(path: Path, payload: dict[str, Any]) -> None:
    """Write *payload* to *path* as indented UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8"
    )


def adjacency_report(
    collection: TileCollection,
    config: MatchConfig,
    stats: InferenceStats | None = None,
) -> dict[str, Any]:
    """Build the JSON payload describing an inferred collection."""
    return {
        "tile_size": collection.tile_size,
        "columns": collection.columns,
        "rows": collection.rows,
        "config": config.model_dump(mode="json"),
        "stats": stats.snapshot() if stats is not None else None,
        "tiles": {
            str(tile_id): sides
            for tile_id, sides in collection.adjacency_map().items()
        },
    }
