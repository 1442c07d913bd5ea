"""OSM building download and footprint parsing."""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from tqdm import tqdm

from .constants import (
    METERS_PER_UNIT, BUILDING_LEVEL_HEIGHT, DEFAULT_BUILDING_HEIGHT,
)
from .exceptions import DataUnavailableError
from .models import Bounds, Footprint

logger = logging.getLogger(__name__)

# Leading number of a tag value such as "12", "12.5 m" or "7;8".
_NUMBER_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")

# XML error pages carry the message in <remark>; other markup is stripped.
_REMARK_RE = re.compile(r"<remark>(.*?)</remark>", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_ERROR_TEXT_LIMIT = 300


class FootprintRejected(Exception):
    """An element that cannot become a footprint.

    ``reason`` is the key under which the discard is counted.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


@dataclass
class BuildingParseReport:
    """Parsed footprints plus a count of discarded elements per reason."""
    footprints: list = field(default_factory=list)
    discarded: Counter = field(default_factory=Counter)

    @property
    def discarded_total(self) -> int:
        return sum(self.discarded.values())


def build_overpass_query(bounds: Bounds) -> str:
    """Overpass QL for every building way and relation inside ``bounds``."""
    bbox = f"{bounds.bottom},{bounds.left},{bounds.top},{bounds.right}"
    return (
        "[out:json][timeout:10];\n"
        "(\n"
        f"\tway[\"building\"]({bbox});\n"
        f"\trelation[\"building\"]({bbox});\n"
        ");\n"
        "out geom;"
    )


def _parse_number(value) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.match(str(value))
    if match is None:
        raise FootprintRejected("malformed")
    return float(match.group(1))


def building_height(tags: dict) -> float:
    """Height in grid units from ``height``, ``building:levels`` or the default."""
    if "height" in tags:
        height = _parse_number(tags["height"])
    elif "building:levels" in tags:
        height = BUILDING_LEVEL_HEIGHT * _parse_number(tags["building:levels"])
    else:
        height = DEFAULT_BUILDING_HEIGHT
    return height / METERS_PER_UNIT


def _element_geometry(element: dict):
    element_type = element.get("type")
    if element_type is None:
        raise FootprintRejected("no-type")

    if element_type == "way":
        source = element
    elif element_type == "relation":
        members = element.get("members")
        if not members:
            raise FootprintRejected("no-geometry")
        source = members[0]
    else:
        raise FootprintRejected("unsupported-type")

    geometry = source.get("geometry")
    if geometry is None:
        raise FootprintRejected("no-geometry")
    return geometry


def _to_grid(geometry, bounds: Bounds, size: tuple, scale: tuple) -> tuple:
    columns, rows = size
    outline = []
    for point in geometry:
        x = (float(point["lon"]) - bounds.left) * scale[0]
        y = (bounds.top - float(point["lat"])) * scale[1]
        if x >= columns - 1 or y >= rows - 1 or x < 0.0 or y < 0.0:
            raise FootprintRejected("out-of-bounds")
        outline.append((x, y))
    return tuple(outline)


def parse_element(element: dict, bounds: Bounds, size: tuple, scale: tuple) -> Footprint:
    """Turn one Overpass element into a ``Footprint``.

    Raises ``FootprintRejected`` when the element is unusable.
    """
    tags = element.get("tags")
    if tags is None:
        raise FootprintRejected("no-tags")

    height = building_height(tags)
    outline = _to_grid(_element_geometry(element), bounds, size, scale)
    if len(outline) < 3:
        raise FootprintRejected("too-few-points")
    return Footprint(height=height, outline=outline)


def _provider_error(text: str) -> str:
    """Readable error text from an Overpass XML or HTML error page."""
    match = _REMARK_RE.search(text)
    body = match.group(1) if match else _TAG_RE.sub(" ", text)
    message = " ".join(body.split())
    if len(message) > _ERROR_TEXT_LIMIT:
        message = message[:_ERROR_TEXT_LIMIT] + "..."
    return message


def parse_buildings(text: str, bounds: Bounds, size: tuple) -> BuildingParseReport:
    """Parse an Overpass JSON response into footprints in grid space.

    ``size`` is the ``(columns, rows)`` of the elevation grid. Elements
    that cannot be used are dropped and counted in the report rather
    than failing the batch. A runtime error remark, such as a query
    timeout, fails the whole response.
    """
    if text.lstrip().startswith("<"):
        raise DataUnavailableError(
            f"Failed to retrieve the building data: {_provider_error(text)}",
            stage="buildings")

    try:
        document = json.loads(text)
        elements = document["elements"]
    except (ValueError, TypeError, KeyError):
        raise DataUnavailableError("Failed to retrieve the building data.",
                                   stage="buildings") from None
    if not isinstance(elements, list):
        raise DataUnavailableError("Failed to retrieve the building data.", stage="buildings")

    remark = document.get("remark")
    if isinstance(remark, str) and remark.strip().startswith("runtime error"):
        raise DataUnavailableError(
            f"Failed to retrieve the building data: {remark.strip()}", stage="buildings")
    if remark:
        logger.warning(f"Overpass remark: {remark}")

    logger.info("Parsing the building data...")
    report = BuildingParseReport()
    if bounds.width == 0 or bounds.height == 0:
        logger.warning("Degenerate bounds, no building can fall inside the grid")
        return report

    columns, rows = size
    scale = (columns / bounds.width, rows / bounds.height)

    for element in tqdm(elements, desc="Buildings", leave=False):
        try:
            report.footprints.append(parse_element(element, bounds, size, scale))
        except FootprintRejected as e:
            report.discarded[e.reason] += 1
        except (KeyError, TypeError, ValueError, AttributeError, IndexError) as e:
            logger.debug(f"Malformed building element: {e}")
            report.discarded["malformed"] += 1

    logger.info(f"Parsed {len(report.footprints)} buildings, "
                f"discarded {report.discarded_total} {dict(report.discarded)}")
    return report
