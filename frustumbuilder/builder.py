"""FrustumBuilder: thin orchestrator that delegates to focused modules."""

import logging
import pathlib
import re
from typing import Callable

from .constants import SUPPORTED_DATASETS, OVERPASS_URL, OPENTOPOGRAPHY_API_KEY
from .exceptions import ValidationError
from .geodesy import validate_bounds, compensate_bounds
from .geometry import Triangulator, earcut_triangulate, build_buildings_mesh, build_base_mesh
from .models import Frustum
from .request import request as http_request
from .storage import Codec, FrustumStore
from . import osm_data
from . import terrain as terrain_mod

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[a-zA-Z0-9-]+$")


def validate_name(name: str) -> None:
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise ValidationError("Invalid Frustum name. The name must consist only "
                              "of alphanumeric characters and dashes.", stage="name")


def validate_dataset(dataset: str) -> None:
    if dataset not in SUPPORTED_DATASETS:
        raise ValidationError(f"Unrecognized dataset {dataset!r}. "
                              f"Supported: {', '.join(SUPPORTED_DATASETS)}.",
                              stage="dataset")


class FrustumBuilder:
    def __init__(self, root: pathlib.Path | None = None,
                 request: Callable | None = None,
                 codec: Codec | None = None,
                 triangulator: Triangulator | None = None,
                 api_key: str | None = OPENTOPOGRAPHY_API_KEY):
        """
        root: directory holding saved Frustums (defaults to FRUSTUM_DIR).
        request: network collaborator ``(url, payload=None) -> str``.
        codec, triangulator: pluggable compression and roof triangulation.
        api_key: OpenTopography API key, if the provider requires one.
        """
        self.store = FrustumStore(root, codec)
        self.request = request or http_request
        self.triangulator = triangulator or earcut_triangulate
        self.api_key = api_key

    def generate(self, name: str, dataset: str, top: float, left: float,
                 bottom: float, right: float) -> Frustum:
        """Download, parse and save a Frustum, then load it back.

        All input is validated before any network or disk access.
        """
        validate_name(name)
        validate_dataset(dataset)
        raw_bounds = validate_bounds(top, left, bottom, right)

        # Compensate for east-west distortion.
        bounds = compensate_bounds(raw_bounds)
        logger.info(f"Generating {name!r} ({dataset}): {bounds.describe()}")

        logger.info("Retrieving the topography data...")
        url = terrain_mod.build_elevation_url(dataset, bounds, self.api_key)
        grid = terrain_mod.parse_elevation_grid(self.request(url), dataset)
        rows, columns = grid.shape

        logger.info("Retrieving the building data...")
        response = self.request(OVERPASS_URL, osm_data.build_overpass_query(bounds))
        report = osm_data.parse_buildings(response, bounds, (columns, rows))

        self.store.save(name, dataset, bounds, grid, report.footprints)
        logger.info("Frustum generation complete.")

        # Meshes always come from the persisted (rounded) data.
        return self.load(name)

    def load(self, name: str) -> Frustum:
        """Load a saved Frustum and rebuild its meshes."""
        validate_name(name)
        saved = self.store.load(name)

        terrain_mesh = terrain_mod.build_terrain_mesh(saved.grid)
        buildings_mesh = build_buildings_mesh(saved.grid, saved.footprints, self.triangulator)
        base_mesh = build_base_mesh(saved.grid)

        return Frustum(
            name=saved.name,
            dataset=saved.dataset,
            bounds=saved.bounds,
            grid=saved.grid,
            footprints=saved.footprints,
            terrain_mesh=terrain_mesh,
            buildings_mesh=buildings_mesh,
            base_mesh=base_mesh,
        )
