"""Shared fixtures for tilelink tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from tile_factory import (
    GREEN,
    RED,
    SEAM,
    bordered_tile,
    save_grid,
)

from tilelink.models import MatchConfig

TILE_SIZE = 8


@pytest.fixture(autouse=True)
def _reset_tilelink_logger() -> Iterator[None]:
    """Drop handlers installed by setup_logging so streams never leak across tests."""
    yield
    logger = logging.getLogger("tilelink")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def default_config() -> MatchConfig:
    """The shipped defaults: tolerance 5, threshold 0.625, chroma-key exclusion."""
    return MatchConfig()


@pytest.fixture()
def flat_config() -> MatchConfig:
    return MatchConfig(policy="flat-ratio-with-veto")


@pytest.fixture()
def seam_pair() -> tuple[bytes, bytes]:
    """Two tiles whose touching columns (A right, B left) are identical."""
    left_tile = bordered_tile(TILE_SIZE, RED, right=SEAM)
    right_tile = bordered_tile(TILE_SIZE, GREEN, left=SEAM)
    return left_tile, right_tile


@pytest.fixture()
def seam_image(tmp_path: Path, seam_pair: tuple[bytes, bytes]) -> Path:
    """A 2×1 tileset PNG (16×8) built from :func:`seam_pair`."""
    return save_grid(tmp_path / "seam.png", [list(seam_pair)], TILE_SIZE)
