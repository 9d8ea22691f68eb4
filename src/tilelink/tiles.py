"""Tile and TileCollection containers.

A :class:`TileCollection` owns every tile sliced from one image at one
tile size.  Neighbor lists on each :class:`Tile` hold references to other
tiles in the same collection and are rebuilt wholesale by the matcher.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum

from tilelink.errors import PreconditionError

BYTES_PER_PIXEL = 4


class Direction(str, Enum):
    """Cardinal placement direction of a neighbor relative to a tile.

    ``B in A.up`` means B may sit directly above A, so A's top edge
    touches B's bottom edge.
    """

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]


_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


@dataclass(eq=False)
class Tile:
    """One square RGBA tile and its inferred neighbors.

    Attributes:
        id: Raster-scan index of the tile in its source grid.
        pixels: Row-major RGBA buffer, 4 bytes per pixel.
        row: Grid row in the source image, when known.
        column: Grid column in the source image, when known.
        up: Tiles that may sit directly above this one.
        down: Tiles that may sit directly below this one.
        left: Tiles that may sit directly to the left.
        right: Tiles that may sit directly to the right.
    """

    id: int
    pixels: bytes
    row: int | None = None
    column: int | None = None
    up: list[Tile] = field(default_factory=list, repr=False)
    down: list[Tile] = field(default_factory=list, repr=False)
    left: list[Tile] = field(default_factory=list, repr=False)
    right: list[Tile] = field(default_factory=list, repr=False)

    def neighbors(self, direction: Direction | str) -> list[Tile]:
        """Return the neighbor list for *direction*."""
        return getattr(self, Direction(direction).value)

    def neighbor_ids(self, direction: Direction | str) -> list[int]:
        return [t.id for t in self.neighbors(direction)]

    def clear_neighbors(self) -> None:
        self.up = []
        self.down = []
        self.left = []
        self.right = []


class TileCollection:
    """Ordered tiles produced from one source image at one tile size.

    Construction validates the whole collection: a positive tile size,
    at least one tile, unique non-negative ids, and every buffer exactly
    ``tile_size * tile_size * 4`` bytes long.  A malformed collection is
    rejected before any matching can start.
    """

    def __init__(
        self,
        tiles: Sequence[Tile],
        tile_size: int,
        columns: int | None = None,
    ) -> None:
        self._tiles: tuple[Tile, ...] = tuple(tiles)
        self.tile_size = tile_size
        self.columns = columns
        self._by_id: dict[int, Tile] = {}
        self.validate()

    @property
    def tiles(self) -> tuple[Tile, ...]:
        """The tiles in raster order; fixed for the life of the collection."""
        return self._tiles

    @property
    def rows(self) -> int | None:
        if not self.columns:
            return None
        return -(-len(self.tiles) // self.columns)

    @property
    def buffer_length(self) -> int:
        """Expected byte length of every tile buffer."""
        return self.tile_size * self.tile_size * BYTES_PER_PIXEL

    def validate(self) -> None:
        """Check collection-wide preconditions and rebuild the id index.

        Tile ids are mutable, so the index used by :meth:`get` and
        :meth:`tile_at` is refreshed on every successful call.

        Raises:
            PreconditionError: On a non-positive tile size, an empty
                collection, a non-integer, negative or duplicate id, or a
                buffer whose length does not match the tile size.
        """
        if (
            not isinstance(self.tile_size, int)
            or isinstance(self.tile_size, bool)
            or self.tile_size <= 0
        ):
            raise PreconditionError(
                f"tile_size must be a positive integer, got {self.tile_size!r}"
            )
        if self.columns is not None and self.columns <= 0:
            raise PreconditionError(
                f"columns must be positive when given, got {self.columns!r}"
            )
        if not self.tiles:
            raise PreconditionError("Tile collection is empty")

        expected = self.buffer_length
        by_id: dict[int, Tile] = {}
        for tile in self.tiles:
            if not isinstance(tile.id, int) or isinstance(tile.id, bool):
                raise PreconditionError(
                    f"Tile id must be an integer, got {tile.id!r}"
                )
            if tile.id < 0:
                raise PreconditionError(f"Tile id must be non-negative, got {tile.id}")
            if tile.id in by_id:
                raise PreconditionError(f"Duplicate tile id: {tile.id}")
            by_id[tile.id] = tile
            if len(tile.pixels) != expected:
                raise PreconditionError(
                    f"Tile {tile.id} buffer is {len(tile.pixels)} bytes, "
                    f"expected {expected} for tile_size {self.tile_size}"
                )

        self._by_id = by_id

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.tiles)

    def __getitem__(self, index: int) -> Tile:
        return self.tiles[index]

    def get(self, tile_id: int) -> Tile:
        """Return the tile with *tile_id*.

        Raises:
            KeyError: If no tile has that id.
        """
        try:
            return self._by_id[tile_id]
        except KeyError:
            raise KeyError(f"No tile with id {tile_id}") from None

    def tile_at(self, row: int, column: int) -> Tile | None:
        """Return the tile at grid position ``(row, column)``, if any."""
        if not self.columns or row < 0 or column < 0 or column >= self.columns:
            return None
        return self._by_id.get(row * self.columns + column)

    def reset_neighbors(self) -> None:
        for tile in self.tiles:
            tile.clear_neighbors()

    def adjacency_map(self) -> dict[int, dict[str, list[int]]]:
        """Return ``{tile_id: {direction: [neighbor ids]}}`` for every tile."""
        return {
            tile.id: {d.value: tile.neighbor_ids(d) for d in Direction}
            for tile in self.tiles
        }
