"""Frustum persistence: text payloads compressed with zstd.

Layout of ``<root>/<name>/``::

    metadata.lfm   plain text: name, dataset, "top left bottom right"
    terrain.lft    zstd text: one line of 3-decimal samples per grid row
    buildings.lfb  zstd text: one line per footprint, height then x y pairs

Meshes are never stored; they are rebuilt from the grid and footprints.
"""

import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import zstandard

from .exceptions import CorruptDataError, FrustumIOError
from .models import Bounds, Footprint, FrustumPaths

logger = logging.getLogger(__name__)

_LOAD_FAILED = "Failed to load the Frustum."
_SAVE_FAILED = "Failed to save the Frustum."


class Codec(Protocol):
    """Lossless byte compressor."""

    def compress(self, data: bytes) -> bytes: ...

    def decompress(self, data: bytes) -> bytes: ...


class ZstdCodec:
    """Zstandard frames carrying their decompressed size."""

    def __init__(self, level: int = zstandard.MAX_COMPRESSION_LEVEL):
        self.level = level

    def compress(self, data: bytes) -> bytes:
        compressor = zstandard.ZstdCompressor(level=self.level, write_content_size=True)
        return compressor.compress(data)

    def decompress(self, data: bytes) -> bytes:
        try:
            expected = zstandard.frame_content_size(data)
        except zstandard.ZstdError as e:
            raise CorruptDataError(f"Failed to decompress: {e}") from e
        if expected < 0:
            raise CorruptDataError("Failed to decompress: frame has no content size.")

        try:
            result = zstandard.ZstdDecompressor().decompress(data, max_output_size=expected)
        except zstandard.ZstdError as e:
            raise CorruptDataError(f"Failed to decompress: {e}") from e

        if len(result) != expected:
            raise CorruptDataError("Failed to decompress: frame is truncated.")
        return result


# ── Text payloads ───────────────────────────────────────────────────────

def format_metadata(name: str, dataset: str, bounds: Bounds) -> str:
    return (f"{name}\n{dataset}\n"
            f"{bounds.top:.6f} {bounds.left:.6f} {bounds.bottom:.6f} {bounds.right:.6f}")


def parse_metadata(text: str) -> tuple:
    """Return ``(name, dataset, bounds)``."""
    tokens = text.split()
    if len(tokens) != 6:
        raise CorruptDataError(_LOAD_FAILED)
    try:
        top, left, bottom, right = (float(t) for t in tokens[2:])
    except ValueError:
        raise CorruptDataError(_LOAD_FAILED) from None
    return tokens[0], tokens[1], Bounds(top=top, left=left, bottom=bottom, right=right)


def format_terrain(grid: np.ndarray) -> str:
    return "".join(
        "".join(f"{value:.3f} " for value in row) + "\n"
        for row in grid
    )


def parse_terrain(text: str) -> np.ndarray:
    """Parse saved terrain rows; the grid size comes from the data itself."""
    try:
        rows = [[float(v) for v in line.split()]
                for line in text.splitlines() if line.strip()]
    except ValueError:
        raise CorruptDataError(_LOAD_FAILED) from None

    if not rows or not rows[0] or any(len(row) != len(rows[0]) for row in rows):
        raise CorruptDataError(_LOAD_FAILED)
    return np.array(rows, dtype=np.float64)


def format_buildings(footprints) -> str:
    lines = []
    for footprint in footprints:
        line = f"{float(footprint.height)!r} "
        line += "".join(f"{x:.3f} {y:.3f} " for x, y in footprint.outline)
        lines.append(line + "\n")
    return "".join(lines)


def parse_saved_buildings(text: str) -> list:
    footprints = []
    for line in text.splitlines():
        tokens = line.split()
        if not tokens:
            continue
        # Height plus at least one x y pair.
        if len(tokens) < 3 or len(tokens) % 2 != 1:
            raise CorruptDataError(_LOAD_FAILED)
        try:
            values = [float(t) for t in tokens]
        except ValueError:
            raise CorruptDataError(_LOAD_FAILED) from None
        outline = tuple(zip(values[1::2], values[2::2]))
        footprints.append(Footprint(height=values[0], outline=outline))
    return footprints


# ── Store ───────────────────────────────────────────────────────────────

@dataclass
class SavedFrustum:
    name: str
    dataset: str
    bounds: Bounds
    grid: np.ndarray
    footprints: list


class FrustumStore:
    """Save and load Frustum source data under a root directory."""

    def __init__(self, root: pathlib.Path | None = None, codec: Codec | None = None):
        self.root = root
        self.codec = codec if codec is not None else ZstdCodec()

    def paths(self, name: str) -> FrustumPaths:
        return FrustumPaths(name, self.root)

    def exists(self, name: str) -> bool:
        paths = self.paths(name)
        return all(p.is_file() for p in (paths.metadata, paths.terrain, paths.buildings))

    def _stage(self, path: pathlib.Path, data: bytes) -> pathlib.Path:
        staged = path.with_name(path.name + ".tmp")
        with open(staged, "wb") as f:
            f.write(data)
        logger.debug(f"Wrote {staged.name} ({len(data) / 1024:.1f} KB)")
        return staged

    def _read_compressed(self, path: pathlib.Path) -> str:
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise CorruptDataError(_LOAD_FAILED) from e

        try:
            return self.codec.decompress(data).decode("utf-8")
        except CorruptDataError as e:
            raise CorruptDataError(f"{_LOAD_FAILED} {path.name}: {e.message}") from e
        except UnicodeDecodeError as e:
            raise CorruptDataError(_LOAD_FAILED) from e

    def save(self, name: str, dataset: str, bounds: Bounds,
             grid: np.ndarray, footprints) -> FrustumPaths:
        """Write all three files, replacing an earlier Frustum of the same name.

        Every file is staged next to its target first. The old metadata is
        removed before the swap and written last, so ``exists`` never
        reports a mix of old and new files.
        """
        logger.info("Saving the generated Frustum...")
        paths = self.paths(name)
        staged = []
        try:
            paths.directory.mkdir(parents=True, exist_ok=True)
            terrain = self.codec.compress(format_terrain(grid).encode("utf-8"))
            staged.append((self._stage(paths.terrain, terrain), paths.terrain))
            buildings = self.codec.compress(format_buildings(footprints).encode("utf-8"))
            staged.append((self._stage(paths.buildings, buildings), paths.buildings))
            metadata = format_metadata(name, dataset, bounds).encode("utf-8")
            staged.append((self._stage(paths.metadata, metadata), paths.metadata))

            paths.metadata.unlink(missing_ok=True)
            for temp, target in staged:
                os.replace(temp, target)
        except OSError as e:
            for temp, _ in staged:
                temp.unlink(missing_ok=True)
            raise FrustumIOError(_SAVE_FAILED) from e

        logger.info(f"Saved Frustum {name!r} to {paths.directory}")
        return paths

    def load(self, name: str) -> SavedFrustum:
        logger.info("Loading the Frustum...")
        paths = self.paths(name)
        try:
            with open(paths.metadata, "r", encoding="utf-8") as f:
                metadata = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptDataError(_LOAD_FAILED) from e

        saved_name, dataset, bounds = parse_metadata(metadata)
        grid = parse_terrain(self._read_compressed(paths.terrain))
        footprints = parse_saved_buildings(self._read_compressed(paths.buildings))

        rows, columns = grid.shape
        logger.info(f"Loaded {saved_name!r}: {columns}x{rows} grid, "
                    f"{len(footprints)} buildings")
        return SavedFrustum(name=saved_name, dataset=dataset, bounds=bounds,
                            grid=grid, footprints=footprints)
