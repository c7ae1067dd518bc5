"""
Mesh Loader Module

Reads the JSON geometry description into a GeometryRecord:

    {
        "geometry_object": {
            "vertices": [x0, y0, z0, x1, y1, z1, ...],
            "triangles": [i0, j0, k0, i1, j1, k1, ...]
        }
    }
"""

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import IO, Any, List, Union

import numpy as np

from .geometry import INDEX_DTYPE, POSITION_DTYPE, GeometryRecord
from .normals import recalculate_normals

_LOGGER = logging.getLogger(__name__)

GEOMETRY_KEY = "geometry_object"
VERTICES_KEY = "vertices"
TRIANGLES_KEY = "triangles"

_INT32_MIN = int(np.iinfo(np.int32).min)
_INT32_MAX = int(np.iinfo(np.int32).max)

Source = Union[str, Path, bytes, bytearray, IO[bytes], IO[str]]


class LoadError(RuntimeError):
    """Base class for every failure of a mesh load. No record is produced."""


class SourceUnreadableError(LoadError):
    pass


class MalformedDocumentError(LoadError):
    pass


class MissingFieldError(LoadError):
    pass


class InvalidVertexError(LoadError):
    pass


class InvalidIndexError(LoadError):
    pass


class IndexOutOfRangeError(InvalidIndexError):
    pass


def _read_source(source: Source) -> tuple[str, Path | None]:
    if isinstance(source, (bytes, bytearray)):
        raw: Any = bytes(source)
        filepath = None
    elif isinstance(source, (str, Path)):
        filepath = Path(source)
        if not filepath.is_file():
            raise SourceUnreadableError(f"File not found: {filepath}")
        try:
            raw = filepath.read_bytes()
        except OSError as e:
            raise SourceUnreadableError(f"Cannot read {filepath}: {e}") from e
    elif hasattr(source, "read"):
        filepath = None
        try:
            raw = source.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnreadableError(f"Cannot read source stream: {e}") from e
    else:
        raise SourceUnreadableError(f"Unsupported source type: {type(source).__name__}")

    if isinstance(raw, str):
        return raw, filepath
    try:
        return raw.decode("utf-8"), filepath
    except UnicodeDecodeError as e:
        raise SourceUnreadableError(f"Source is not UTF-8 text: {e}") from e


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _is_int32(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return _INT32_MIN <= value <= _INT32_MAX


def _geometry_arrays(doc: Any) -> tuple[list, list]:
    if not isinstance(doc, dict):
        raise MissingFieldError("Invalid document (expected JSON object)")
    if GEOMETRY_KEY not in doc:
        raise MissingFieldError(f"Missing '{GEOMETRY_KEY}' object")

    geometry = doc[GEOMETRY_KEY]
    if not isinstance(geometry, dict):
        raise MissingFieldError(f"'{GEOMETRY_KEY}' is not an object")
    for key in (VERTICES_KEY, TRIANGLES_KEY):
        if key not in geometry:
            raise MissingFieldError(f"Missing '{GEOMETRY_KEY}.{key}' array")
        if not isinstance(geometry[key], list):
            raise MissingFieldError(f"'{GEOMETRY_KEY}.{key}' is not an array")

    return geometry[VERTICES_KEY], geometry[TRIANGLES_KEY]


def _parse_positions(values: list) -> np.ndarray:
    for i, value in enumerate(values):
        if not _is_number(value):
            raise InvalidVertexError(f"Vertex element {i} is not a finite number: {value!r}")

    usable = len(values) - len(values) % 3
    if usable != len(values):
        _LOGGER.warning(
            "Dropping trailing partial vertex group (%d of %d coordinates unused)",
            len(values) - usable,
            len(values),
        )
    return np.asarray(values[:usable], dtype=POSITION_DTYPE).reshape(-1, 3)


def _parse_indices(values: list, n_vertices: int) -> np.ndarray:
    for i, value in enumerate(values):
        if not _is_int32(value):
            raise InvalidIndexError(f"Index element {i} is not a 32-bit integer: {value!r}")
    if len(values) % 3 != 0:
        raise InvalidIndexError(f"Index count {len(values)} is not a multiple of 3")

    indices = np.asarray(values, dtype=INDEX_DTYPE)
    bad = np.flatnonzero((indices < 0) | (indices >= n_vertices))
    if bad.size:
        first = int(bad[0])
        raise IndexOutOfRangeError(
            f"Index element {first} = {int(indices[first])} is outside [0, {n_vertices})"
        )
    return indices


def load_geometry(source: Source) -> GeometryRecord:
    """
    Load a geometry description and compute its vertex normals.

    Args:
        source: file path, raw bytes, or an open file object

    Returns:
        GeometryRecord with normals already computed

    Raises:
        LoadError: one of its subclasses, naming what was wrong
    """
    started = time.perf_counter()
    text, filepath = _read_source(source)

    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedDocumentError(f"JSON nested too deeply: {e}") from e

    raw_vertices, raw_indices = _geometry_arrays(doc)
    positions = _parse_positions(raw_vertices)
    indices = _parse_indices(raw_indices, len(positions))

    record = GeometryRecord(positions=positions, indices=indices, filepath=filepath)
    recalculate_normals(record)

    _LOGGER.debug(
        "Loaded %s: %d vertices, %d triangles in %.3fs",
        filepath or "<memory>",
        record.n_vertices,
        record.n_triangles,
        time.perf_counter() - started,
    )
    return record


class MeshLoader:
    """
    Geometry JSON loader plus the file helpers the host UI needs (mesh picker,
    info preview).
    """

    SUPPORTED_FORMATS = {
        '.json': 'Geometry JSON',
    }

    @classmethod
    def get_supported_formats(cls) -> dict:
        return cls.SUPPORTED_FORMATS.copy()

    def load(self, source: Source) -> GeometryRecord:
        return load_geometry(source)

    def list_mesh_files(self, directory: Union[str, Path]) -> List[Path]:
        """
        Mesh files directly inside ``directory``, sorted by name.

        Raises:
            FileNotFoundError: directory does not exist
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Directory not found: {directory}")
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in self.SUPPORTED_FORMATS
        )

    def get_file_info(self, filepath: Union[str, Path]) -> dict:
        """
        File summary for previews. Load failures are reported under the
        ``error`` key instead of raising.

        Raises:
            FileNotFoundError: file does not exist
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        ext = filepath.suffix.lower()
        info: dict[str, Any] = {
            'filename': filepath.name,
            'format': self.SUPPORTED_FORMATS.get(ext, 'Unknown'),
            'extension': ext,
            'file_size_kb': round(filepath.stat().st_size / 1024, 2),
        }

        try:
            record = load_geometry(filepath)
        except LoadError as e:
            info['error'] = f"{type(e).__name__}: {e}"
            return info

        info['n_vertices'] = record.n_vertices
        info['n_triangles'] = record.n_triangles
        return info
