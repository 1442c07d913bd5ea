"""Export a loaded Frustum as a PLY, OBJ or STL model via trimesh."""

import logging
import pathlib

import numpy as np
import trimesh

from .constants import SUPPORTED_FORMATS, SUPPORTED_ORIENTATIONS, MATERIAL_COLOR
from .exceptions import FrustumError, FrustumIOError, ValidationError
from .models import Frustum, FrustumPaths, Mesh

logger = logging.getLogger(__name__)


def validate_export_options(fmt: str, orientation: str) -> bool:
    """Check the format and orientation; return True for Z-up."""
    if fmt not in SUPPORTED_FORMATS:
        raise ValidationError(f"Unrecognized export format {fmt!r}.", stage="export")
    if orientation not in SUPPORTED_ORIENTATIONS:
        raise ValidationError("'orientation' must be either 'z-up' or 'y-up'.", stage="export")
    return orientation == "z-up"


def _to_trimesh(mesh: Mesh, z_up: bool) -> trimesh.Trimesh | None:
    if len(mesh.indices) % 3 != 0:
        raise FrustumError("Failed to generate the export data.", stage="export")
    if len(mesh.indices) == 0:
        return None

    verts = mesh.positions.astype(np.float64)
    if z_up:
        verts = np.column_stack([verts[:, 0], -verts[:, 2], verts[:, 1]])
    return trimesh.Trimesh(vertices=verts, faces=mesh.faces, process=False)


def frustum_to_scene(frustum: Frustum, z_up: bool = False) -> trimesh.Scene:
    """Terrain, base and buildings as named geometries sharing one colour."""
    scene = trimesh.Scene()
    for label, mesh in (("Terrain", frustum.get_terrain_mesh()),
                        ("Base", frustum.get_base_mesh()),
                        ("Buildings", frustum.get_buildings_mesh())):
        part = _to_trimesh(mesh, z_up)
        if part is None:
            logger.debug(f"Skipping empty {label.lower()} mesh")
            continue
        part.visual.face_colors = MATERIAL_COLOR
        part.metadata["name"] = label
        scene.add_geometry(part, node_name=label, geom_name=label)

    if not scene.geometry:
        raise FrustumError("Failed to generate the export data.", stage="export")
    return scene


def frustum_to_trimesh(frustum: Frustum, z_up: bool = False) -> trimesh.Trimesh:
    """Merge terrain, base and buildings into one uniformly coloured mesh."""
    parts = list(frustum_to_scene(frustum, z_up).geometry.values())
    combined = trimesh.util.concatenate(parts)
    combined.visual.face_colors = MATERIAL_COLOR
    return combined


def export_frustum(frustum: Frustum, fmt: str, orientation: str,
                   directory: pathlib.Path | None = None) -> pathlib.Path:
    """Write ``<directory>/<name>.<fmt>`` and return its path.

    OBJ keeps the three parts as named objects; PLY and STL hold a
    single merged mesh.
    """
    z_up = validate_export_options(fmt, orientation)

    logger.info("Generating the export data...")
    if fmt == "obj":
        exported = frustum_to_scene(frustum, z_up)
        face_count = sum(len(g.faces) for g in exported.geometry.values())
    else:
        exported = frustum_to_trimesh(frustum, z_up)
        face_count = len(exported.faces)

    output_path = FrustumPaths.get_export_path(f"{frustum.name}.{fmt}", directory)
    logger.info(f"Exporting to {output_path}...")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        exported.export(str(output_path), file_type=fmt)
    except OSError as e:
        raise FrustumIOError("Export failed.", stage="export") from e

    size_kb = output_path.stat().st_size / 1024
    logger.info(f"Export finished: {face_count} faces ({size_kb:.1f} KB)")
    return output_path
