"""Unit tests for roof triangulation, building extrusion and the base skirt."""

from __future__ import annotations

import numpy as np
import pytest

from frustumbuilder.constants import BASE_BOTTOM, BUILDING_DEPTH, METERS_PER_UNIT
from frustumbuilder.geometry import (
    build_base_mesh,
    build_buildings_mesh,
    earcut_triangulate,
    quad_indices,
)
from frustumbuilder.models import Footprint


def _face_normals(mesh) -> np.ndarray:
    tris = mesh.positions[mesh.faces].astype(np.float64)
    return np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])


class TestQuadIndices:
    def test_bottom_left_then_top_right(self) -> None:
        assert quad_indices(0, 1, 3, 2).tolist() == [0, 1, 3, 3, 2, 0]


class TestEarcutTriangulate:
    def test_convex_quad_gives_two_triangles(self) -> None:
        indices = earcut_triangulate([(0, 0), (2, 0), (2, 1), (0, 1)])
        assert len(indices) == 6
        assert set(indices.tolist()) == {0, 1, 2, 3}

    def test_closed_ring_ignores_duplicate_point(self) -> None:
        indices = earcut_triangulate([(0, 0), (2, 0), (2, 1), (0, 1), (0, 0)])
        assert len(indices) == 6
        assert max(indices) <= 4

    def test_concave_polygon(self) -> None:
        # L shape: 6 vertices -> 4 triangles.
        outline = [(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2)]
        indices = earcut_triangulate(outline)
        assert len(indices) == 12


class TestBuildBuildingsMesh:
    """Wall quads, roof triangulation and grid lookups."""

    def test_counts_for_closed_square(self, flat_grid, square_footprint) -> None:
        mesh = build_buildings_mesh(flat_grid, [square_footprint])
        points = len(square_footprint)
        assert not mesh.has_normals
        assert len(mesh.vertices) == 2 * points
        wall_triangles = 2 * (points - 1)
        assert len(mesh.indices) == 3 * wall_triangles + 6

    def test_roof_and_floor_heights(self, sloped_grid) -> None:
        footprint = Footprint(height=2.0, outline=((1.2, 0.5), (2.0, 0.5), (2.0, 1.5)))
        mesh = build_buildings_mesh(sloped_grid, [footprint])
        ground = sloped_grid[0, 1]
        roofs = mesh.vertices[0::2]
        floors = mesh.vertices[1::2]
        np.testing.assert_allclose(roofs[:, 1], ground + 2.0)
        np.testing.assert_allclose(floors[:, 1], ground - BUILDING_DEPTH / METERS_PER_UNIT,
                                   rtol=1e-6)

    def test_vertices_centered(self, flat_grid, square_footprint) -> None:
        mesh = build_buildings_mesh(flat_grid, [square_footprint])
        # 4 columns x 3 rows -> offset (-2, 0, -1.5)
        np.testing.assert_allclose(mesh.vertices[0], [-1.5, 1.0, -1.0])

    def test_wall_and_roof_indices(self, flat_grid) -> None:
        footprint = Footprint(height=1.0, outline=((0.5, 0.5), (1.5, 0.5), (1.5, 1.5)))
        mesh = build_buildings_mesh(flat_grid, [footprint])
        walls = mesh.indices[:12].tolist()
        assert walls == [0, 1, 3, 3, 2, 0, 2, 3, 5, 5, 4, 2]
        roof = mesh.indices[12:].tolist()
        assert sorted(roof) == [0, 2, 4]

    def test_second_building_offsets_indices(self, flat_grid, square_footprint) -> None:
        mesh = build_buildings_mesh(flat_grid, [square_footprint, square_footprint])
        half = len(mesh.indices) // 2
        first = mesh.indices[:half].astype(np.int64)
        second = mesh.indices[half:].astype(np.int64)
        np.testing.assert_array_equal(second, first + 2 * len(square_footprint))

    def test_out_of_grid_footprint_skipped(self, flat_grid, square_footprint) -> None:
        outside = Footprint(height=1.0, outline=((7.0, 0.5), (7.5, 0.5), (7.5, 1.0)))
        mesh = build_buildings_mesh(flat_grid, [outside, square_footprint])
        assert len(mesh.vertices) == 2 * len(square_footprint)
        assert mesh.indices.max() < len(mesh.vertices)

    def test_empty_outline_skipped(self, flat_grid, square_footprint) -> None:
        empty = Footprint(height=1.0, outline=())
        mesh = build_buildings_mesh(flat_grid, [empty, square_footprint])
        assert len(mesh.vertices) == 2 * len(square_footprint)
        assert mesh.indices.max() < len(mesh.vertices)

    def test_custom_triangulator(self, flat_grid, square_footprint) -> None:
        calls = []

        def fan(points):
            calls.append(len(points))
            return np.array([0, 1, 2, 0, 2, 3], dtype=np.uint32)

        mesh = build_buildings_mesh(flat_grid, [square_footprint], triangulator=fan)
        assert calls == [len(square_footprint)]
        assert mesh.indices[-6:].tolist() == [0, 2, 4, 0, 4, 6]

    def test_no_footprints(self, flat_grid) -> None:
        mesh = build_buildings_mesh(flat_grid, [])
        assert len(mesh.vertices) == 0
        assert len(mesh.indices) == 0


class TestBuildBaseMesh:
    """Skirt strips plus bottom cap."""

    def test_counts(self, sloped_grid) -> None:
        rows, columns = sloped_grid.shape
        mesh = build_base_mesh(sloped_grid)
        assert len(mesh.vertices) == 2 * (2 * columns + 2 * rows) + 4
        quads = 2 * (columns - 1) + 2 * (rows - 1) + 1
        assert len(mesh.indices) == 6 * quads
        assert mesh.indices.max() < len(mesh.vertices)

    def test_skirt_follows_terrain(self, sloped_grid) -> None:
        mesh = build_base_mesh(sloped_grid)
        columns = sloped_grid.shape[1]
        first_strip = mesh.vertices[:2 * columns]
        np.testing.assert_allclose(first_strip[0::2, 1], sloped_grid[0])
        np.testing.assert_allclose(first_strip[1::2, 1], BASE_BOTTOM)

    def test_bottom_cap_at_depth(self, sloped_grid) -> None:
        mesh = build_base_mesh(sloped_grid)
        np.testing.assert_allclose(mesh.vertices[-4:, 1], BASE_BOTTOM)

    def test_strips_face_outward(self, sloped_grid) -> None:
        rows, columns = sloped_grid.shape
        normals = _face_normals(build_base_mesh(sloped_grid))
        nx, nz = 2 * (columns - 1), 2 * (rows - 1)

        front = normals[:nx]                       # z = 0
        back = normals[nx:2 * nx]                  # z = rows - 1
        left = normals[2 * nx:2 * nx + nz]         # x = 0
        right = normals[2 * nx + nz:2 * nx + 2 * nz]  # x = columns - 1
        assert (front[:, 2] < 0).all()
        assert (back[:, 2] > 0).all()
        assert (left[:, 0] < 0).all()
        assert (right[:, 0] > 0).all()

    def test_bottom_faces_down(self, sloped_grid) -> None:
        normals = _face_normals(build_base_mesh(sloped_grid))
        assert (normals[-2:, 1] < 0).all()

    @pytest.mark.parametrize("shape", [(2, 2), (5, 3)])
    def test_other_sizes(self, shape) -> None:
        grid = np.ones(shape)
        mesh = build_base_mesh(grid)
        assert len(mesh.indices) % 3 == 0
        assert mesh.indices.max() < len(mesh.vertices)
