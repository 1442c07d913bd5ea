"""Data classes and path management."""

import pathlib
from dataclasses import dataclass, field

import numpy as np

from .constants import (
    FRUSTUM_DIR, EXPORT_DIR,
    METADATA_FILE_NAME, TERRAIN_FILE_NAME, BUILDINGS_FILE_NAME,
)


class FrustumPaths:
    """Manage the on-disk layout of a named Frustum."""

    def __init__(self, name: str, root: pathlib.Path | None = None):
        self.name = name
        self.root = pathlib.Path(root) if root is not None else FRUSTUM_DIR

    @property
    def directory(self) -> pathlib.Path:
        return self.root / self.name

    @property
    def metadata(self) -> pathlib.Path:
        return self.directory / METADATA_FILE_NAME

    @property
    def terrain(self) -> pathlib.Path:
        return self.directory / TERRAIN_FILE_NAME

    @property
    def buildings(self) -> pathlib.Path:
        return self.directory / BUILDINGS_FILE_NAME

    @staticmethod
    def get_export_path(filename: str, directory: pathlib.Path | None = None) -> pathlib.Path:
        """Get the export file path."""
        return (pathlib.Path(directory) if directory is not None else EXPORT_DIR) / filename


@dataclass(frozen=True)
class Bounds:
    top: float
    left: float
    bottom: float
    right: float

    @property
    def width(self) -> float:
        return abs(self.right - self.left)

    @property
    def height(self) -> float:
        return abs(self.top - self.bottom)

    def describe(self) -> str:
        """Return a human-readable description of the bounds."""
        return (f"top={self.top:.6f}, left={self.left:.6f}, "
                f"bottom={self.bottom:.6f}, right={self.right:.6f}")


@dataclass(frozen=True)
class Footprint:
    """A building outline in grid space plus its height in grid units."""
    height: float
    outline: tuple

    def __len__(self):
        return len(self.outline)


@dataclass
class Mesh:
    """Vertex/index buffers.

    With ``has_normals`` the vertex rows alternate position, normal, so
    indices address every other row.
    """
    vertices: np.ndarray = field(
        default_factory=lambda: np.empty((0, 3), dtype=np.float32))
    indices: np.ndarray = field(
        default_factory=lambda: np.empty(0, dtype=np.uint32))
    has_normals: bool = False

    @property
    def stride(self) -> int:
        return 2 if self.has_normals else 1

    @property
    def vertex_count(self) -> int:
        return len(self.vertices) // self.stride

    @property
    def positions(self) -> np.ndarray:
        return self.vertices[::self.stride]

    @property
    def normals(self) -> np.ndarray | None:
        if not self.has_normals:
            return None
        return self.vertices[1::2]

    @property
    def faces(self) -> np.ndarray:
        return self.indices.reshape(-1, 3)


@dataclass
class Frustum:
    """A generated region: source data plus the meshes derived from it."""
    name: str
    dataset: str
    bounds: Bounds
    grid: np.ndarray
    footprints: list
    terrain_mesh: Mesh
    buildings_mesh: Mesh
    base_mesh: Mesh

    def get_size(self) -> tuple:
        """Return ``(columns, rows)`` of the elevation grid."""
        rows, columns = self.grid.shape
        return columns, rows

    def get_terrain_mesh(self) -> Mesh:
        return self.terrain_mesh

    def get_buildings_mesh(self) -> Mesh:
        return self.buildings_mesh

    def get_base_mesh(self) -> Mesh:
        return self.base_mesh
