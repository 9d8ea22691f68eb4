"""Pydantic configuration models for edge matching and tileset runs."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

# Border color painted around tiles in the reference tilesets.
DEFAULT_CHROMA_KEY: tuple[int, int, int] = (63, 38, 49)


class ExclusionMode(str, Enum):
    """Which pixels are treated as non-informative and skipped.

    * **ALPHA_ONLY**: fully transparent pixels only.
    * **ALPHA_CHROMAKEY**: transparent pixels plus exact chroma-key RGB.
    * **ALPHA_NEAR_WHITE**: transparent pixels plus visible near-white pixels.
    """

    ALPHA_ONLY = "alpha-only"
    ALPHA_CHROMAKEY = "alpha+chromakey"
    ALPHA_NEAR_WHITE = "alpha+near-white"


class MatchPolicy(str, Enum):
    """How per-pixel matches are aggregated into a single decision.

    * **SYMMETRIC_RATIO**: ``matches / valid`` must reach the threshold on
      both strips independently.
    * **FLAT_RATIO_WITH_VETO**: strips that are mostly excluded are vetoed,
      then ``matches / strip_length`` must reach the threshold.
    """

    SYMMETRIC_RATIO = "symmetric-ratio"
    FLAT_RATIO_WITH_VETO = "flat-ratio-with-veto"


class MatchConfig(BaseModel):
    """Tolerance and threshold settings for the edge-compatibility predicate.

    Attributes:
        tolerance: Maximum per-channel absolute difference (0–255) for two
            pixels to count as matching.
        match_threshold: Minimum fraction of matching pixels (0.0–1.0).
        exclusion_mode: Pixel exclusion rule.
        policy: Aggregate decision policy.
        empty_veto: Apply the excluded-fraction veto under the symmetric
            policy too.  The flat policy always applies it.
        empty_threshold: Excluded fraction above which a strip is vetoed.
        chroma_key: RGB color excluded under ``alpha+chromakey``.
        near_white_cutoff: Channel value that R, G and B must all exceed
            for a pixel to count as near-white.
    """

    tolerance: int = Field(default=5, ge=0, le=255)
    match_threshold: float = Field(default=0.625, ge=0.0, le=1.0)
    exclusion_mode: ExclusionMode = ExclusionMode.ALPHA_CHROMAKEY
    policy: MatchPolicy = MatchPolicy.SYMMETRIC_RATIO
    empty_veto: bool = False
    empty_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    chroma_key: tuple[int, int, int] = DEFAULT_CHROMA_KEY
    near_white_cutoff: int = Field(default=240, ge=0, le=255)

    model_config = {"frozen": True}

    @field_validator("chroma_key")
    @classmethod
    def _chroma_key_in_range(cls, v: tuple[int, int, int]) -> tuple[int, int, int]:
        if any(c < 0 or c > 255 for c in v):
            raise ValueError(f"chroma_key channels must be within 0-255, got {v}")
        return v

    @property
    def veto_enabled(self) -> bool:
        """Whether the excluded-fraction veto applies under this policy."""
        return self.empty_veto or self.policy is MatchPolicy.FLAT_RATIO_WITH_VETO


class TilesetSpec(BaseModel):
    """A complete inference run description, usually loaded from YAML.

    Attributes:
        image_path: Path to the source tileset image.
        tile_size: Side length in pixels of each square tile.
        match: Edge-matching parameters.
        max_workers: Thread pool size for extraction and matching
            (0 = run serially).
        output_path: Optional path for the JSON adjacency report.
    """

    image_path: str = ""
    tile_size: int = Field(default=16, gt=0)
    match: MatchConfig = MatchConfig()
    max_workers: int = Field(default=0, ge=0)
    output_path: str = ""
