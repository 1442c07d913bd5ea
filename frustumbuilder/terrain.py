"""Elevation grid retrieval, parsing, and terrain mesh generation.

Provides functions for:
1. Building the OpenTopography global-DEM request URL
2. Parsing an ESRI ASCII grid (AAIGrid) response into grid units
3. Building the terrain surface mesh with interleaved per-vertex normals
"""

import logging
from urllib.parse import urlencode

import numpy as np

from .constants import (
    OPENTOPOGRAPHY_URL, METERS_PER_UNIT, NODATA_THRESHOLD,
    TERRAIN_NORMAL_SMOOTHING, DATASETS_WITH_DEFECTIVE_LAST_ROW,
)
from .exceptions import DataUnavailableError, ParseError
from .geometry import center_translation, quad_indices
from .models import Bounds, Mesh

logger = logging.getLogger(__name__)

_PARSE_FAILED = "Failed to parse the topography data."


def build_elevation_url(dataset: str, bounds: Bounds, api_key: str | None = None) -> str:
    """Return the GET URL for an AAIGrid covering ``bounds``."""
    params = {
        "demtype": dataset.upper(),
        "south": f"{bounds.bottom:.6f}",
        "north": f"{bounds.top:.6f}",
        "west": f"{bounds.left:.6f}",
        "east": f"{bounds.right:.6f}",
        "outputFormat": "AAIGrid",
    }
    if api_key:
        params["API_Key"] = api_key
    return f"{OPENTOPOGRAPHY_URL}?{urlencode(params)}"


def _parse_header(lines):
    """Consume the keyword lines of an AAIGrid header.

    Returns (header dict, index of the first data line).
    """
    header = {}
    index = 0
    while index < len(lines):
        tokens = lines[index].split()
        if tokens and tokens[0][0].isalpha():
            if len(tokens) < 2:
                raise ParseError(_PARSE_FAILED, stage="terrain")
            header[tokens[0].lower()] = tokens[1]
            index += 1
        elif not tokens:
            index += 1
        else:
            break
    return header, index


def _fill_nodata(values: np.ndarray) -> np.ndarray:
    """Convert a row to grid units, repeating the last good sample over no-data."""
    missing = values <= NODATA_THRESHOLD
    elevations = values / METERS_PER_UNIT

    positions = np.where(missing, 0, np.arange(len(values)))
    last_good = np.maximum.accumulate(positions)
    seen_good = np.logical_or.accumulate(~missing)
    return np.where(seen_good, elevations[last_good], 0.0)


def parse_elevation_grid(text: str, dataset: str) -> np.ndarray:
    """Parse an AAIGrid response into a ``(rows, columns)`` array.

    Values are returned in grid units. For datasets whose last row is
    known to be defective upstream (AW3D30) that row is dropped.

    Raises
    ------
    DataUnavailableError
        The provider answered with an error message instead of a grid.
    ParseError
        The header is incomplete or the body does not match it.
    """
    if "Error" in text:
        raise DataUnavailableError(
            f"Failed to retrieve the topography data. Response: \"{text.strip()}\".",
            stage="terrain")

    logger.info("Parsing the topography data...")
    lines = text.splitlines()
    header, start = _parse_header(lines)

    try:
        columns = int(header["ncols"])
        rows = int(header["nrows"])
    except (KeyError, ValueError):
        raise ParseError(_PARSE_FAILED, stage="terrain") from None

    if dataset in DATASETS_WITH_DEFECTIVE_LAST_ROW:
        rows -= 1

    if columns < 1 or rows < 1:
        raise ParseError(_PARSE_FAILED, stage="terrain")

    data_lines = [line for line in lines[start:] if line.strip()]
    if len(data_lines) < rows:
        raise ParseError(_PARSE_FAILED, stage="terrain")

    grid = np.empty((rows, columns), dtype=np.float64)
    for z, line in enumerate(data_lines[:rows]):
        try:
            values = np.array(line.split(), dtype=np.float64)
        except ValueError:
            raise ParseError(_PARSE_FAILED, stage="terrain") from None
        if len(values) != columns:
            raise ParseError(_PARSE_FAILED, stage="terrain")
        grid[z] = _fill_nodata(values)

    logger.info(f"Terrain grid: {columns}x{rows}, "
                f"range={grid.min():.2f}..{grid.max():.2f} units")
    return grid


def build_terrain_mesh(grid: np.ndarray) -> Mesh:
    """Triangulate the elevation grid.

    Each grid sample becomes a position followed by its normal, estimated
    from the central difference of its 4-neighbourhood (clamped at edges).
    Every quad of adjacent samples yields two triangles.
    """
    logger.info("Generating the terrain mesh...")
    rows, columns = grid.shape

    zz, xx = np.meshgrid(np.arange(rows), np.arange(columns), indexing='ij')
    positions = np.column_stack([xx.ravel(), grid.ravel(), zz.ravel()])
    positions = positions + center_translation(columns, rows)

    padded = np.pad(grid, 1, mode='edge')
    left = padded[1:-1, :-2]
    right = padded[1:-1, 2:]
    top = padded[:-2, 1:-1]
    bottom = padded[2:, 1:-1]

    normals = np.column_stack([
        (left - right).ravel(),
        np.full(rows * columns, TERRAIN_NORMAL_SMOOTHING),
        (top - bottom).ravel(),
    ])
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)

    vertices = np.empty((rows * columns * 2, 3), dtype=np.float32)
    vertices[0::2] = positions
    vertices[1::2] = normals

    # ── Face indices: 2 triangles per grid quad ─────────────────
    if rows > 1 and columns > 1:
        qz, qx = np.meshgrid(np.arange(rows - 1), np.arange(columns - 1), indexing='ij')
        top_left = (qz * columns + qx).ravel()
        bottom_left = top_left + columns
        indices = quad_indices(top_left, bottom_left, bottom_left + 1, top_left + 1)
    else:
        indices = np.empty(0, dtype=np.uint32)

    logger.info(f"Terrain mesh: {rows * columns} verts, {len(indices) // 3} faces")
    return Mesh(vertices=vertices, indices=indices, has_normals=True)
