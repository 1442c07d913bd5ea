"""Building extrusion, roof triangulation, and base skirt mesh generation."""

import logging
from typing import Protocol

import numpy as np
import mapbox_earcut as earcut

from .constants import BUILDING_DEPTH, METERS_PER_UNIT, BASE_BOTTOM
from .models import Mesh

logger = logging.getLogger(__name__)


class Triangulator(Protocol):
    """Triangulate a simple polygon given as an ``(n, 2)`` point array.

    Returns a flat array of indices into the input points, three per
    triangle.
    """

    def __call__(self, points: np.ndarray) -> np.ndarray: ...


def earcut_triangulate(points) -> np.ndarray:
    """Ear-clipping triangulation of a single ring (no holes)."""
    coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    ring_end = np.array([len(coords)], dtype=np.uint32)
    return earcut.triangulate_float64(coords, ring_end).astype(np.uint32)


# ── Shared helpers ──────────────────────────────────────────────────────

def center_translation(columns: int, rows: int) -> np.ndarray:
    """Translation that moves the grid centre to the world origin in X/Z."""
    return np.array([-columns / 2.0, 0.0, -rows / 2.0])


def quad_indices(top_left, bottom_left, bottom_right, top_right) -> np.ndarray:
    """Indices for quads split into a bottom-left and a top-right triangle."""
    return np.column_stack([
        top_left, bottom_left, bottom_right,
        bottom_right, top_right, top_left,
    ]).ravel().astype(np.uint32)


def _interleave(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    out = np.empty((len(first) * 2, 3), dtype=np.float64)
    out[0::2] = first
    out[1::2] = second
    return out


def _to_mesh(vertex_groups, index_groups) -> Mesh:
    if not vertex_groups:
        return Mesh()
    return Mesh(vertices=np.concatenate(vertex_groups).astype(np.float32),
                indices=np.concatenate(index_groups).astype(np.uint32))


# ── Buildings ───────────────────────────────────────────────────────────

def build_buildings_mesh(grid: np.ndarray, footprints,
                         triangulator: Triangulator = earcut_triangulate) -> Mesh:
    """Extrude each footprint into walls and a flat roof.

    Every outline point contributes a roof vertex (ground + height) and a
    floor vertex sunk ``BUILDING_DEPTH`` below the ground sample under the
    first point. Walls join consecutive points without wrapping; the roof
    closes the top.
    """
    logger.info("Generating the buildings mesh...")
    rows, columns = grid.shape
    offset = center_translation(columns, rows)
    depth = BUILDING_DEPTH / METERS_PER_UNIT

    vertex_groups = []
    index_groups = []
    vertex_count = 0
    skipped = 0

    for footprint in footprints:
        outline = np.asarray(footprint.outline, dtype=np.float64).reshape(-1, 2)
        if len(outline) == 0:
            skipped += 1
            continue
        gx, gy = int(outline[0, 0]), int(outline[0, 1])
        if not (0 <= gx < columns and 0 <= gy < rows):
            skipped += 1
            continue

        ground = grid[gy, gx]
        n = len(outline)
        roof = np.column_stack([outline[:, 0], np.full(n, ground + footprint.height), outline[:, 1]])
        floor = np.column_stack([outline[:, 0], np.full(n, ground - depth), outline[:, 1]])
        vertex_groups.append(_interleave(roof, floor) + offset)

        top_left = vertex_count + 2 * np.arange(n - 1)
        walls = quad_indices(top_left, top_left + 1, top_left + 3, top_left + 2)
        roof_indices = vertex_count + 2 * np.asarray(triangulator(outline), dtype=np.int64)
        index_groups.append(np.concatenate([walls, roof_indices]))

        vertex_count += 2 * n

    if skipped:
        logger.warning(f"Skipped {skipped} empty or off-grid footprints")

    mesh = _to_mesh(vertex_groups, index_groups)
    logger.info(f"Buildings mesh: {mesh.vertex_count} verts, {len(mesh.indices) // 3} faces")
    return mesh


# ── Base ────────────────────────────────────────────────────────────────

def _side_strip(grid: np.ndarray, walk_x: bool, extreme: bool, base_index: int):
    """One skirt wall along a grid edge, from the surface down to the base.

    ``walk_x`` walks the columns of the first (or, with ``extreme``, last)
    row; otherwise it walks the rows of the first or last column. The
    winding is fixed per edge so that all four walls face outward.
    """
    rows, columns = grid.shape
    count = columns if walk_x else rows
    fixed = (rows - 1 if walk_x else columns - 1) if extreme else 0

    steps = np.arange(count)
    fixed_axis = np.full(count, fixed)
    xs, zs = (steps, fixed_axis) if walk_x else (fixed_axis, steps)

    tops = np.column_stack([xs, grid[zs, xs], zs])
    bottoms = np.column_stack([xs, np.full(count, BASE_BOTTOM), zs])

    b = base_index + 2 * np.arange(count - 1)
    counterclockwise = extreme if walk_x else not extreme
    if counterclockwise:
        indices = quad_indices(b, b + 1, b + 3, b + 2)
    else:
        indices = quad_indices(b + 2, b + 3, b + 1, b)

    return _interleave(tops, bottoms), indices


def build_base_mesh(grid: np.ndarray) -> Mesh:
    """Close the terrain into a solid: four skirt walls and a bottom quad."""
    rows, columns = grid.shape
    offset = center_translation(columns, rows)

    vertex_groups = []
    index_groups = []
    vertex_count = 0

    for walk_x, extreme in ((True, False), (True, True), (False, False), (False, True)):
        verts, indices = _side_strip(grid, walk_x, extreme, vertex_count)
        vertex_groups.append(verts + offset)
        index_groups.append(indices)
        vertex_count += len(verts)

    # Bottom: top-left, bottom-left, bottom-right, top-right
    right, far = columns - 1, rows - 1
    bottom = np.array([
        [0, BASE_BOTTOM, far],
        [right, BASE_BOTTOM, far],
        [0, BASE_BOTTOM, 0],
        [right, BASE_BOTTOM, 0],
    ], dtype=np.float64)
    vertex_groups.append(bottom + offset)
    b = vertex_count
    index_groups.append(quad_indices(b, b + 2, b + 3, b + 1))

    return _to_mesh(vertex_groups, index_groups)
