"""
Smooth vertex normals.

A vertex normal is the plain sum of the face normals of its incident
triangles. Nothing is normalized here; the renderer normalizes before use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .geometry import GeometryRecord


def face_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Per-triangle normals cross(A - B, C - B).

    The vertex order is fixed: it decides the sign of the normal for a given
    winding.

    Args:
        positions: (N, 3) vertex positions
        indices: flat (3T,) or (T, 3) triangle indices

    Returns:
        (T, 3) unnormalized face normals
    """
    faces = np.asarray(indices).reshape(-1, 3)
    if len(faces) == 0:
        return np.zeros((0, 3), dtype=np.float64)

    va = positions[faces[:, 0]]
    vb = positions[faces[:, 1]]
    vc = positions[faces[:, 2]]
    return np.cross(va - vb, vc - vb)


def recalculate_normals(record: "GeometryRecord") -> None:
    """Recompute every vertex normal of ``record`` from scratch."""
    record.check_invariants()
    normals = np.zeros_like(record.positions, dtype=np.float64)
    faces = record.faces
    if len(faces):
        fn = face_normals(record.positions, faces)
        # np.add.at accumulates repeated indices (a vertex shared by many faces)
        np.add.at(normals, faces[:, 0], fn)
        np.add.at(normals, faces[:, 1], fn)
        np.add.at(normals, faces[:, 2], fn)
    record.normals = normals
