"""Configuration constants, paths, and environment overrides."""

import os
import pathlib

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ── Paths ───────────────────────────────────────────────────────────────
BASE_DIR = pathlib.Path(__file__).parent.parent.absolute()
FRUSTUM_DIR = pathlib.Path(os.environ.get("FRUSTUM_DIR", BASE_DIR / "Frustums"))
EXPORT_DIR = pathlib.Path(os.environ.get("FRUSTUM_EXPORT_DIR", BASE_DIR / "Exports"))

METADATA_FILE_NAME = "metadata.lfm"
TERRAIN_FILE_NAME = "terrain.lft"
BUILDINGS_FILE_NAME = "buildings.lfb"

# ── Providers ───────────────────────────────────────────────────────────
OPENTOPOGRAPHY_URL = "https://portal.opentopography.org/API/globaldem"
OPENTOPOGRAPHY_API_KEY = os.environ.get("OPENTOPOGRAPHY_API_KEY", "").strip() or None
OVERPASS_URL = os.environ.get("OVERPASS_URL", "https://lz4.overpass-api.de/api/interpreter")
REQUEST_TIMEOUT = float(os.environ.get("FRUSTUM_REQUEST_TIMEOUT", "60"))

SUPPORTED_DATASETS = ("aw3d30", "srtmgl1")
# Datasets whose last grid row is known to be defective upstream.
DATASETS_WITH_DEFECTIVE_LAST_ROW = frozenset({"aw3d30"})

# ── Generator ───────────────────────────────────────────────────────────
MAX_LATITUDE = 80.0
MAX_LONGITUDE = 180.0
NODATA_THRESHOLD = -9999
METERS_PER_UNIT = 30.0
TERRAIN_NORMAL_SMOOTHING = 1.0
DEFAULT_BUILDING_HEIGHT = 20.0   # metres
BUILDING_LEVEL_HEIGHT = 3.428    # metres per storey
BUILDING_DEPTH = 20.0            # metres below ground
BASE_BOTTOM = -33.0              # world units

# ── Exporter ────────────────────────────────────────────────────────────
SUPPORTED_FORMATS = ("ply", "obj", "stl")
SUPPORTED_ORIENTATIONS = ("z-up", "y-up")
MATERIAL_COLOR = [128, 128, 128, 255]
