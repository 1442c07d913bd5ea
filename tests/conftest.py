"""Shared pytest fixtures for the FrustumBuilder test suite."""

import json

import numpy as np
import pytest

from frustumbuilder.geodesy import compensate_bounds
from frustumbuilder.models import Bounds, Footprint

# St. Gallen, the example used in the CLI documentation.
ST_GALLEN = {
    "top": 47.327618,
    "left": 9.295821,
    "bottom": 47.126480,
    "right": 9.621767,
}


# ---------------------------------------------------------------------------
# Provider payload fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_grid_text():
    """Return a factory rendering rows of integers as an AAIGrid response."""

    def _make(rows, ncols=None, nrows=None):
        ncols = len(rows[0]) if ncols is None else ncols
        nrows = len(rows) if nrows is None else nrows
        header = (
            f"ncols        {ncols}\n"
            f"nrows        {nrows}\n"
            "xllcorner    9.295821\n"
            "yllcorner    47.126480\n"
            "cellsize     0.000277777778\n"
            "NODATA_value -9999\n"
        )
        body = "".join(" " + " ".join(str(v) for v in row) + "\n" for row in rows)
        return header + body

    return _make


@pytest.fixture()
def st_gallen_bounds() -> Bounds:
    """Compensated St. Gallen bounds."""
    return compensate_bounds(Bounds(**ST_GALLEN))


@pytest.fixture()
def grid_to_lonlat():
    """Return a converter from grid-space points to Overpass lon/lat dicts."""

    def _convert(points, bounds: Bounds, size):
        columns, rows = size
        return [
            {"lat": bounds.top - y * bounds.height / rows,
             "lon": bounds.left + x * bounds.width / columns}
            for x, y in points
        ]

    return _convert


@pytest.fixture()
def square_outline():
    """A closed unit square ring in grid space (first point repeated)."""
    return [(0.5, 0.5), (1.5, 0.5), (1.5, 1.5), (0.5, 1.5), (0.5, 0.5)]


@pytest.fixture()
def flat_grid() -> np.ndarray:
    return np.zeros((3, 4), dtype=np.float64)


@pytest.fixture()
def sloped_grid() -> np.ndarray:
    """3 rows x 4 columns rising along X."""
    return np.tile(np.arange(4, dtype=np.float64), (3, 1))


@pytest.fixture()
def square_footprint(square_outline) -> Footprint:
    return Footprint(height=1.0, outline=tuple(square_outline))


# ---------------------------------------------------------------------------
# Network collaborator stub
# ---------------------------------------------------------------------------


class StubRequest:
    """Records calls and serves a fixed grid (GET) and building JSON (POST)."""

    def __init__(self, grid_text: str, buildings: dict | str):
        self.grid_text = grid_text
        self.buildings = buildings if isinstance(buildings, str) else json.dumps(buildings)
        self.calls = []

    def __call__(self, url, payload=None):
        self.calls.append((url, payload))
        if payload is None:
            return self.grid_text
        return self.buildings


@pytest.fixture()
def st_gallen_request(make_grid_text, st_gallen_bounds, grid_to_lonlat, square_outline):
    """Stub returning a 3x3 grid and one rectangular building for St. Gallen."""
    grid_text = make_grid_text([[300, 330, 360], [300, 330, 360], [300, 330, 360]])
    buildings = {
        "elements": [
            {
                "type": "way",
                "id": 1,
                "tags": {"building": "yes", "height": "15"},
                "geometry": grid_to_lonlat(square_outline, st_gallen_bounds, (3, 3)),
            },
        ],
    }
    return StubRequest(grid_text, buildings)
