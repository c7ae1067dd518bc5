"""
Midpoint (1-to-4) subdivision.

Every triangle (A, B, C) is split at its edge midpoints:

              C
             / \\
          mAC---mBC
           / \\ / \\
          A---mAB---B

Midpoints are shared between the two triangles of an edge, so the refined
surface stays connected and crack-free.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import numpy as np

from .geometry import INDEX_DTYPE, POSITION_DTYPE, GeometryRecord
from .normals import recalculate_normals

_LOGGER = logging.getLogger(__name__)

EdgeKey = Tuple[int, int]


def edge_key(i: int, j: int) -> EdgeKey:
    """Order-independent key of the undirected edge (i, j)."""
    return (i, j) if i <= j else (j, i)


def unique_edge_count(indices: np.ndarray) -> int:
    faces = np.asarray(indices).reshape(-1, 3)
    edges = {
        edge_key(int(f[a]), int(f[b]))
        for f in faces
        for a, b in ((0, 1), (1, 2), (2, 0))
    }
    return len(edges)


def _subdivide_once(record: GeometryRecord) -> None:
    positions = record.positions
    faces = record.faces

    new_positions: List[np.ndarray] = []
    cache: Dict[EdgeKey, int] = {}
    base = len(positions)

    def midpoint(i: int, j: int) -> int:
        key = edge_key(i, j)
        idx = cache.get(key)
        if idx is None:
            idx = base + len(new_positions)
            new_positions.append((positions[i] + positions[j]) * 0.5)
            cache[key] = idx
        return idx

    new_faces = np.empty((4 * len(faces), 3), dtype=INDEX_DTYPE)
    for n, (a, b, c) in enumerate(faces.tolist()):
        m_ac = midpoint(a, c)
        m_ab = midpoint(a, b)
        m_bc = midpoint(b, c)

        k = 4 * n
        new_faces[k] = (a, m_ab, m_ac)
        new_faces[k + 1] = (m_ac, m_ab, m_bc)
        new_faces[k + 2] = (m_ac, m_bc, c)
        new_faces[k + 3] = (m_ab, b, m_bc)

    if new_positions:
        added = np.asarray(new_positions, dtype=POSITION_DTYPE)
        record.positions = np.vstack([positions, added])
    # Normals of every vertex (old ones included) are rebuilt below.
    record.normals = np.zeros_like(record.positions)
    record.indices = new_faces.reshape(-1)

    _LOGGER.debug(
        "Subdivided %d -> %d triangles, %d midpoints added",
        len(faces),
        len(new_faces),
        len(new_positions),
    )


def subdivide(record: GeometryRecord, levels: int = 1) -> GeometryRecord:
    """
    Refine ``record`` in place, ``levels`` times, and recompute its normals.

    Each level adds one vertex per unique edge and multiplies the index count
    by exactly four.

    Returns:
        the same record, for chaining
    """
    levels = int(levels)
    if levels < 1:
        raise ValueError(f"levels must be >= 1, got {levels}")
    record.check_invariants()

    for _ in range(levels):
        _subdivide_once(record)
        recalculate_normals(record)
    return record
