"""YAML configuration loading and validation for tileset inference runs.

Expected shape::

    image_path: assets/overworld.png
    tile_size: 16
    max_workers: 4
    output_path: output/overworld_adjacency.json
    match:
      tolerance: 5
      match_threshold: 0.625
      exclusion_mode: alpha+chromakey
      policy: symmetric-ratio
      chroma_key: [63, 38, 49]

The ``match`` keys may also be written at the top level instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tilelink.errors import ConfigError
from tilelink.logging import get_logger
from tilelink.models import MatchConfig, MatchPolicy, TilesetSpec

logger = get_logger("config")


def _read_yaml(path: str | Path) -> dict[str, Any]:
    resolved = Path(path)
    if not resolved.is_file():
        raise ConfigError(f"Config file not found: {resolved}")

    with open(resolved, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {resolved}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}"
        )
    return data


def _resolve_relative(value: str, base: Path) -> str:
    if not value:
        return value
    candidate = Path(value)
    if candidate.is_absolute() or candidate.exists():
        return value
    return str(base / candidate)


def load_config(path: str | Path) -> TilesetSpec:
    """Load and validate a tileset run description.

    Relative ``image_path`` values that do not exist from the working
    directory are resolved against the config file's directory.

    Raises:
        ConfigError: If the file is missing, not valid YAML, or fails
            schema validation.
    """
    data = _read_yaml(path)

    flat = {k: data.pop(k) for k in list(data) if k in MatchConfig.model_fields}
    if flat:
        if "match" in data:
            raise ConfigError(
                "Match settings given both at top level and under 'match': "
                + ", ".join(sorted(flat))
            )
        data["match"] = flat

    match_raw = data.get("match", {})
    if match_raw is not None and not isinstance(match_raw, dict):
        raise ConfigError(
            f"'match' section must be a YAML mapping, got {type(match_raw).__name__}"
        )

    try:
        spec = TilesetSpec(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc

    base = Path(path).resolve().parent
    spec = spec.model_copy(
        update={"image_path": _resolve_relative(spec.image_path, base)}
    )
    logger.info(
        "Loaded config: tile_size=%d policy=%s exclusion=%s",
        spec.tile_size,
        spec.match.policy.value,
        spec.match.exclusion_mode.value,
    )
    return spec


def load_match_config(path: str | Path) -> MatchConfig:
    """Load only the matching parameters from *path*."""
    return load_config(path).match


def check_spec(spec: TilesetSpec, *, check_image: bool = True) -> list[str]:
    """Sanity-check an already loaded run description.

    Returns:
        Non-fatal warnings (empty when the config looks sensible).

    Raises:
        ConfigError: If *check_image* is set and the image is missing.
    """
    warnings: list[str] = []

    if check_image:
        if not spec.image_path:
            warnings.append("No image_path set; pass the image on the command line")
        elif not Path(spec.image_path).is_file():
            raise ConfigError(f"Tileset image does not exist: {spec.image_path}")

    match = spec.match
    if match.match_threshold == 0.0:
        warnings.append("match_threshold is 0; every non-degenerate edge pair matches")
    if match.tolerance >= 128:
        warnings.append(
            f"tolerance {match.tolerance} is very loose; most colors will match"
        )
    if match.empty_veto and match.policy is MatchPolicy.FLAT_RATIO_WITH_VETO:
        warnings.append("empty_veto is implied by the flat-ratio-with-veto policy")

    return warnings


def validate_config(path: str | Path, *, check_image: bool = True) -> list[str]:
    """Validate a config file without running inference.

    Returns:
        Non-fatal warnings from :func:`check_spec`.

    Raises:
        ConfigError: On any fatal problem, including a missing image when
            *check_image* is set.
    """
    return check_spec(load_config(path), check_image=check_image)
