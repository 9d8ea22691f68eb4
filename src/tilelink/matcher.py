"""Edge-compatibility predicate and exhaustive adjacency inference.

For every ordered pair of distinct tiles (A, B) four independent checks
are made, each comparing the edge of A that faces a direction with the
opposite edge of B:

====================  =====================
check                 on match, B goes into
====================  =====================
A.top vs B.bottom     ``A.up``
A.bottom vs B.top     ``A.down``
A.left vs B.right     ``A.left``
A.right vs B.left     ``A.right``
====================  =====================

The predicate itself is symmetric in its two strips; only the matcher's
choice of which edges to pair encodes direction.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

from pydantic import BaseModel

from tilelink.edges import EdgeCache, EdgeStrip, Pixel, ProgressCallback, TileEdges
from tilelink.errors import PreconditionError
from tilelink.logging import get_logger
from tilelink.models import ExclusionMode, MatchConfig, MatchPolicy
from tilelink.observability import InferenceStats
from tilelink.tiles import Direction, Tile, TileCollection

logger = get_logger("matcher")

DEFAULT_CONFIG = MatchConfig()

REASON_MATCHED = "matched"
REASON_BELOW_THRESHOLD = "below-threshold"
REASON_DEGENERATE = "degenerate"
REASON_VETOED = "vetoed"


# ---------------------------------------------------------------------------
# Pixel classification
# ---------------------------------------------------------------------------


def is_excluded(pixel: Pixel, config: MatchConfig = DEFAULT_CONFIG) -> bool:
    """Return True if *pixel* carries no information under *config*."""
    r, g, b, a = pixel
    if a == 0:
        return True
    mode = config.exclusion_mode
    if mode is ExclusionMode.ALPHA_CHROMAKEY:
        return (r, g, b) == config.chroma_key
    if mode is ExclusionMode.ALPHA_NEAR_WHITE:
        cutoff = config.near_white_cutoff
        return r > cutoff and g > cutoff and b > cutoff
    return False


def count_valid(strip: EdgeStrip, config: MatchConfig = DEFAULT_CONFIG) -> int:
    """Number of pixels in *strip* that are not excluded."""
    return sum(1 for pixel in strip if not is_excluded(pixel, config))


# ---------------------------------------------------------------------------
# Predicate
# ---------------------------------------------------------------------------


class _Tally(NamedTuple):
    length: int
    valid_a: int
    valid_b: int
    match_count: int


class EdgeComparison(BaseModel):
    """Detailed outcome of comparing two edge strips.

    Attributes:
        length: Number of pixels in each strip.
        valid_a: Non-excluded pixels in the first strip.
        valid_b: Non-excluded pixels in the second strip.
        match_count: Pixels where both pixels are valid and within tolerance.
        mismatched_indices: Indices where both pixels are valid but differ
            by more than the tolerance on some channel.
        matched: The final decision.
        reason: ``matched``, ``below-threshold``, ``degenerate`` (a strip
            with no valid pixels) or ``vetoed`` (too many excluded pixels).
    """

    length: int
    valid_a: int
    valid_b: int
    match_count: int
    mismatched_indices: list[int] = []
    matched: bool
    reason: str

    model_config = {"frozen": True}

    @property
    def ratio_a(self) -> float:
        return self.match_count / self.valid_a if self.valid_a else 0.0

    @property
    def ratio_b(self) -> float:
        return self.match_count / self.valid_b if self.valid_b else 0.0

    @property
    def flat_ratio(self) -> float:
        return self.match_count / self.length if self.length else 0.0


def _pixels_close(p: Pixel, q: Pixel, tolerance: int) -> bool:
    return (
        abs(p[0] - q[0]) <= tolerance
        and abs(p[1] - q[1]) <= tolerance
        and abs(p[2] - q[2]) <= tolerance
        and abs(p[3] - q[3]) <= tolerance
    )


def _check_lengths(strip_a: Sequence[Pixel], strip_b: Sequence[Pixel]) -> None:
    if len(strip_a) != len(strip_b):
        raise PreconditionError(
            f"Edge strips differ in length: {len(strip_a)} vs {len(strip_b)}"
        )


def _tally(
    strip_a: EdgeStrip,
    strip_b: EdgeStrip,
    config: MatchConfig,
    mismatched: list[int] | None = None,
) -> _Tally:
    tolerance = config.tolerance
    valid_a = valid_b = match_count = 0
    for i, (pa, pb) in enumerate(zip(strip_a, strip_b)):
        ok_a = not is_excluded(pa, config)
        ok_b = not is_excluded(pb, config)
        valid_a += ok_a
        valid_b += ok_b
        if ok_a and ok_b:
            if _pixels_close(pa, pb, tolerance):
                match_count += 1
            elif mismatched is not None:
                mismatched.append(i)
    return _Tally(len(strip_a), valid_a, valid_b, match_count)


def _decide(tally: _Tally, config: MatchConfig) -> tuple[bool, str]:
    length, valid_a, valid_b, match_count = tally
    if valid_a == 0 or valid_b == 0:
        return False, REASON_DEGENERATE

    if config.veto_enabled:
        limit = config.empty_threshold
        if (length - valid_a) / length > limit or (length - valid_b) / length > limit:
            return False, REASON_VETOED

    threshold = config.match_threshold
    if config.policy is MatchPolicy.SYMMETRIC_RATIO:
        passed = (
            match_count / valid_a >= threshold and match_count / valid_b >= threshold
        )
    else:
        passed = match_count / length >= threshold
    return passed, REASON_MATCHED if passed else REASON_BELOW_THRESHOLD


def compare_edges(
    strip_a: EdgeStrip,
    strip_b: EdgeStrip,
    config: MatchConfig = DEFAULT_CONFIG,
) -> EdgeComparison:
    """Compare two strips pixel by pixel and explain the decision.

    Args:
        strip_a: First edge strip.
        strip_b: Second edge strip, same length as *strip_a*.
        config: Tolerance, threshold and exclusion settings.

    Returns:
        An :class:`EdgeComparison` with the counts behind the decision.

    Raises:
        PreconditionError: If the strips differ in length.
    """
    _check_lengths(strip_a, strip_b)
    mismatched: list[int] = []
    tally = _tally(strip_a, strip_b, config, mismatched)
    matched, reason = _decide(tally, config)
    return EdgeComparison(
        length=tally.length,
        valid_a=tally.valid_a,
        valid_b=tally.valid_b,
        match_count=tally.match_count,
        mismatched_indices=mismatched,
        matched=matched,
        reason=reason,
    )


def edges_match(
    strip_a: EdgeStrip,
    strip_b: EdgeStrip,
    config: MatchConfig = DEFAULT_CONFIG,
) -> bool:
    """Return True if the two strips are visually compatible under *config*.

    Raises:
        PreconditionError: If the strips differ in length.
    """
    _check_lengths(strip_a, strip_b)
    return _decide(_tally(strip_a, strip_b, config), config)[0]


# ---------------------------------------------------------------------------
# Adjacency inference
# ---------------------------------------------------------------------------


class _Partition(NamedTuple):
    neighbors: dict[Direction, list[Tile]]
    pairs: int
    degenerate: int


class AdjacencyMatcher:
    """Populates the four neighbor lists of every tile in a collection.

    The configuration is fixed at construction so every comparison in a
    run uses the same exclusion rule and aggregate policy.
    """

    def __init__(
        self,
        config: MatchConfig | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.max_workers = max_workers

    def match(self, strip_a: EdgeStrip, strip_b: EdgeStrip) -> bool:
        return edges_match(strip_a, strip_b, self.config)

    def _degenerate_sides(self, cache: EdgeCache) -> dict[int, set[Direction]]:
        sides: dict[int, set[Direction]] = {}
        for tile_id, edges in cache.items():
            empty = {
                d
                for d in Direction
                if count_valid(edges.facing(d), self.config) == 0
            }
            if empty:
                logger.debug(
                    "Tile %d has fully excluded edges: %s",
                    tile_id,
                    ", ".join(sorted(d.value for d in empty)),
                )
            sides[tile_id] = empty
        return sides

    def _match_partition(
        self,
        tile_a: Tile,
        tiles: Sequence[Tile],
        cache: EdgeCache,
        degenerate: dict[int, set[Direction]],
    ) -> _Partition:
        edges_a: TileEdges = cache[tile_a.id]
        found: dict[Direction, list[Tile]] = {d: [] for d in Direction}
        pairs = degenerate_count = 0

        for tile_b in tiles:
            if tile_b.id == tile_a.id:
                continue
            pairs += 1
            edges_b = cache[tile_b.id]
            for direction in Direction:
                if (
                    direction in degenerate[tile_a.id]
                    or direction.opposite in degenerate[tile_b.id]
                ):
                    degenerate_count += 1
                    continue
                if self.match(
                    edges_a.facing(direction), edges_b.facing(direction.opposite)
                ):
                    found[direction].append(tile_b)

        return _Partition(found, pairs, degenerate_count)

    def infer(
        self,
        collection: TileCollection,
        progress_callback: ProgressCallback | None = None,
    ) -> InferenceStats:
        """Rebuild every tile's neighbor lists from scratch.

        Edges are extracted and validated for all tiles before any list is
        reset, so a malformed collection fails without partial results.

        Args:
            collection: Tiles to compare; mutated in place.
            progress_callback: Optional ``(stage, current, total)`` hook for
                the ``"edges"`` and ``"matching"`` stages.

        Returns:
            Counters describing the run.

        Raises:
            PreconditionError: If the collection is empty or any tile
                buffer does not match the tile size.
        """
        collection.validate()
        stats = InferenceStats(
            tile_count=len(collection), tile_size=collection.tile_size
        )

        cache = EdgeCache.build(
            collection,
            max_workers=self.max_workers,
            progress_callback=progress_callback,
        )
        degenerate = self._degenerate_sides(cache)
        collection.reset_neighbors()

        tiles = collection.tiles
        total = len(tiles)

        def run(tile: Tile) -> _Partition:
            return self._match_partition(tile, tiles, cache, degenerate)

        if self.max_workers and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = executor.map(run, tiles)
                for done, (tile, partition) in enumerate(zip(tiles, results), start=1):
                    self._apply(tile, partition, stats)
                    if progress_callback is not None:
                        progress_callback("matching", done, total)
        else:
            for done, tile in enumerate(tiles, start=1):
                self._apply(tile, run(tile), stats)
                if progress_callback is not None:
                    progress_callback("matching", done, total)

        stats.finish()
        logger.info(
            "Inferred adjacency for %d tiles: %d pairs, %d matches "
            "(up=%d down=%d left=%d right=%d)",
            total,
            stats.pairs_compared,
            stats.total_matches,
            stats.matches(Direction.UP),
            stats.matches(Direction.DOWN),
            stats.matches(Direction.LEFT),
            stats.matches(Direction.RIGHT),
        )
        return stats

    @staticmethod
    def _apply(tile: Tile, partition: _Partition, stats: InferenceStats) -> None:
        tile.up = partition.neighbors[Direction.UP]
        tile.down = partition.neighbors[Direction.DOWN]
        tile.left = partition.neighbors[Direction.LEFT]
        tile.right = partition.neighbors[Direction.RIGHT]
        stats.record_partition(
            partition.pairs,
            partition.degenerate,
            {d: len(ts) for d, ts in partition.neighbors.items()},
        )


def infer_neighbors(
    collection: TileCollection,
    config: MatchConfig | None = None,
    *,
    max_workers: int | None = None,
    progress_callback: ProgressCallback | None = None,
) -> InferenceStats:
    """Infer up/down/left/right neighbor lists for every tile in *collection*.

    Convenience wrapper around :class:`AdjacencyMatcher`.
    """
    matcher = AdjacencyMatcher(config, max_workers=max_workers)
    return matcher.infer(collection, progress_callback=progress_callback)
