"""Edge strip extraction from raw RGBA tile buffers."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from tilelink.errors import PreconditionError
from tilelink.logging import get_logger
from tilelink.tiles import BYTES_PER_PIXEL, Direction, TileCollection

logger = get_logger("edges")

Pixel = tuple[int, int, int, int]
EdgeStrip = tuple[Pixel, ...]

ProgressCallback = Callable[[str, int, int], None]


@dataclass(frozen=True)
class TileEdges:
    """The four one-pixel-wide borders of a tile."""

    top: EdgeStrip
    bottom: EdgeStrip
    left: EdgeStrip
    right: EdgeStrip

    def facing(self, direction: Direction | str) -> EdgeStrip:
        """Return the strip on the side that faces a neighbor in *direction*."""
        direction = Direction(direction)
        if direction is Direction.UP:
            return self.top
        if direction is Direction.DOWN:
            return self.bottom
        if direction is Direction.LEFT:
            return self.left
        return self.right


def _pixel_at(pixels: bytes, index: int) -> Pixel:
    offset = index * BYTES_PER_PIXEL
    return (
        pixels[offset],
        pixels[offset + 1],
        pixels[offset + 2],
        pixels[offset + 3],
    )


def extract_edges(pixels: bytes, tile_size: int) -> TileEdges:
    """Slice the top/bottom rows and left/right columns out of a tile.

    Args:
        pixels: Row-major RGBA buffer of ``tile_size * tile_size`` pixels.
        tile_size: Side length of the square tile.

    Returns:
        A :class:`TileEdges` whose strips each hold ``tile_size`` pixels.
        ``left``/``right`` are sampled top to bottom.

    Raises:
        PreconditionError: If *tile_size* is not a positive integer or the
            buffer length does not match it.
    """
    if not isinstance(tile_size, int) or isinstance(tile_size, bool) or tile_size <= 0:
        raise PreconditionError(
            f"tile_size must be a positive integer, got {tile_size!r}"
        )
    expected = tile_size * tile_size * BYTES_PER_PIXEL
    if len(pixels) != expected:
        raise PreconditionError(
            f"Pixel buffer is {len(pixels)} bytes, expected {expected} "
            f"for tile_size {tile_size}"
        )

    last = tile_size - 1
    return TileEdges(
        top=tuple(_pixel_at(pixels, x) for x in range(tile_size)),
        bottom=tuple(_pixel_at(pixels, last * tile_size + x) for x in range(tile_size)),
        left=tuple(_pixel_at(pixels, y * tile_size) for y in range(tile_size)),
        right=tuple(_pixel_at(pixels, y * tile_size + last) for y in range(tile_size)),
    )


class EdgeCache(Mapping[int, TileEdges]):
    """Write-once map of tile id to :class:`TileEdges` for one inference run."""

    def __init__(self, edges: dict[int, TileEdges], tile_size: int) -> None:
        self._edges = edges
        self.tile_size = tile_size

    @classmethod
    def build(
        cls,
        collection: TileCollection,
        max_workers: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> "EdgeCache":
        """Extract edges for every tile in *collection*.

        Args:
            collection: A validated tile collection.
            max_workers: Thread pool size; ``None``, 0 or 1 runs serially.
            progress_callback: Optional ``(stage, current, total)`` hook,
                called with stage ``"edges"`` after each tile.

        Returns:
            A populated cache covering every tile id.
        """
        tile_size = collection.tile_size
        total = len(collection)
        edges: dict[int, TileEdges] = {}

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = executor.map(
                    lambda tile: extract_edges(tile.pixels, tile_size), collection
                )
                for done, (tile, tile_edges) in enumerate(
                    zip(collection, results), start=1
                ):
                    edges[tile.id] = tile_edges
                    if progress_callback is not None:
                        progress_callback("edges", done, total)
        else:
            for done, tile in enumerate(collection, start=1):
                edges[tile.id] = extract_edges(tile.pixels, tile_size)
                if progress_callback is not None:
                    progress_callback("edges", done, total)

        logger.debug("Extracted edges for %d tiles (tile_size=%d)", total, tile_size)
        return cls(edges, tile_size)

    def __getitem__(self, tile_id: int) -> TileEdges:
        return self._edges[tile_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._edges)

    def __len__(self) -> int:
        return len(self._edges)
