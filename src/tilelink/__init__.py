"""TileLink — infer which tileset tiles can sit next to each other."""

from tilelink.config import (
    check_spec,
    load_config,
    load_match_config,
    validate_config,
)
from tilelink.edges import EdgeCache, EdgeStrip, Pixel, TileEdges, extract_edges
from tilelink.errors import (
    ConfigError,
    ImageLoadError,
    PreconditionError,
    TileLinkError,
)
from tilelink.logging import get_logger, setup_logging
from tilelink.matcher import (
    AdjacencyMatcher,
    EdgeComparison,
    compare_edges,
    edges_match,
    infer_neighbors,
    is_excluded,
)
from tilelink.models import ExclusionMode, MatchConfig, MatchPolicy, TilesetSpec
from tilelink.observability import (
    InferenceStats,
    adjacency_report,
    write_run_summary,
)
from tilelink.slicer import (
    collection_from_buffers,
    load_tileset,
    open_tileset,
    slice_image,
)
from tilelink.tiles import Direction, Tile, TileCollection

__all__ = [
    "AdjacencyMatcher",
    "ConfigError",
    "Direction",
    "EdgeCache",
    "EdgeComparison",
    "EdgeStrip",
    "ExclusionMode",
    "ImageLoadError",
    "InferenceStats",
    "MatchConfig",
    "MatchPolicy",
    "Pixel",
    "PreconditionError",
    "Tile",
    "TileCollection",
    "TileEdges",
    "TileLinkError",
    "TilesetSpec",
    "adjacency_report",
    "check_spec",
    "collection_from_buffers",
    "compare_edges",
    "edges_match",
    "extract_edges",
    "get_logger",
    "infer_neighbors",
    "is_excluded",
    "load_config",
    "load_match_config",
    "load_tileset",
    "open_tileset",
    "setup_logging",
    "slice_image",
    "validate_config",
    "write_run_summary",
]
