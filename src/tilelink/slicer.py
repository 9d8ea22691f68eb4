"""Tileset decoding and grid slicing into a :class:`TileCollection`."""

from __future__ import annotations

import io
from collections.abc import Sequence
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from tilelink.errors import ImageLoadError, PreconditionError
from tilelink.logging import get_logger
from tilelink.tiles import Tile, TileCollection

logger = get_logger("slicer")


def open_tileset(source: bytes | str | Path) -> Image.Image:
    """Decode a tileset from raw bytes or a file path into RGBA.

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded.
    """
    if isinstance(source, bytes):
        stream: io.BytesIO | Path = io.BytesIO(source)
        label = f"<{len(source)} bytes>"
    else:
        stream = Path(source)
        label = str(stream)
        if not stream.is_file():
            raise ImageLoadError(f"Tileset image not found: {stream}")

    try:
        with Image.open(stream) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"Cannot decode tileset image {label}: {exc}") from exc


def slice_image(image: Image.Image, tile_size: int) -> TileCollection:
    """Cut *image* into square tiles in row-major order.

    Columns and rows are ``width // tile_size`` and ``height // tile_size``;
    any partial tiles along the right and bottom edges are dropped.

    Args:
        image: Source tileset (converted to RGBA if needed).
        tile_size: Side length of each tile in pixels.

    Returns:
        A validated collection whose tile ids are ``row * columns + column``.

    Raises:
        PreconditionError: If *tile_size* is not positive or the image is
            smaller than one tile.
    """
    if not isinstance(tile_size, int) or isinstance(tile_size, bool) or tile_size <= 0:
        raise PreconditionError(
            f"tile_size must be a positive integer, got {tile_size!r}"
        )
    if image.mode != "RGBA":
        image = image.convert("RGBA")

    width, height = image.size
    columns = width // tile_size
    rows = height // tile_size
    if columns == 0 or rows == 0:
        raise PreconditionError(
            f"Image {width}×{height} is smaller than one {tile_size}px tile"
        )
    if width % tile_size or height % tile_size:
        logger.warning(
            "Image %d×%d is not a multiple of %dpx; dropping partial tiles",
            width,
            height,
            tile_size,
        )

    tiles: list[Tile] = []
    for row in range(rows):
        for col in range(columns):
            box = (
                col * tile_size,
                row * tile_size,
                (col + 1) * tile_size,
                (row + 1) * tile_size,
            )
            tiles.append(
                Tile(
                    id=row * columns + col,
                    pixels=image.crop(box).tobytes(),
                    row=row,
                    column=col,
                )
            )

    logger.info(
        "Sliced %d×%d image into %d tiles (%d columns × %d rows, %dpx)",
        width,
        height,
        len(tiles),
        columns,
        rows,
        tile_size,
    )
    return TileCollection(tiles, tile_size, columns=columns)


def load_tileset(source: bytes | str | Path, tile_size: int) -> TileCollection:
    """Decode *source* and slice it into tiles of *tile_size* pixels."""
    return slice_image(open_tileset(source), tile_size)


def collection_from_buffers(
    buffers: Sequence[bytes],
    tile_size: int,
    columns: int | None = None,
) -> TileCollection:
    """Wrap already-decoded RGBA buffers as a collection with raster ids.

    Raises:
        PreconditionError: If the buffers are empty or mis-sized.
    """
    tiles = []
    for index, pixels in enumerate(buffers):
        row = index // columns if columns else None
        col = index % columns if columns else None
        tiles.append(Tile(id=index, pixels=bytes(pixels), row=row, column=col))
    return TileCollection(tiles, tile_size, columns=columns)
