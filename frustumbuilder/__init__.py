"""FrustumBuilder package: terrain and building meshes from OpenTopography and OSM data."""

from frustumbuilder.builder import FrustumBuilder
from frustumbuilder.models import Bounds, Footprint, Frustum, Mesh
