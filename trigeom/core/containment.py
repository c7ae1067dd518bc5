"""
Point containment by ray casting.

A single ray is cast from the query point along RAY_DIRECTION and the
triangles it crosses are counted (Moller-Trumbore test). An odd count means
the point is inside. The mesh is assumed closed; a ray passing exactly
through a vertex or an edge can be counted twice or not at all, and the
result is then unreliable.

RAY_DIRECTION is (1.0, 0.7, 0.3) rather than a (1, 1, 0) diagonal. It lies
off the coordinate planes and off the 45-degree diagonals, so a ray cast from
the centre of an axis-aligned box misses the box edges and vertices.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from .geometry import GeometryRecord

# Fixed, so results are reproducible. Skewed off the coordinate planes and
# the 45-degree diagonals: from the centre of an axis-aligned box a (1, 1, 0)
# ray runs exactly through a box edge.
RAY_DIRECTION = np.array([1.0, 0.7, 0.3], dtype=np.float64)

EPSILON = float(np.finfo(np.float64).eps)

PointLike = Union[np.ndarray, Sequence[float]]


def _as_point(value: PointLike) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.size != 3:
        raise ValueError(f"Expected a 3D point, got {arr.size} values")
    return arr


def ray_triangle_intersect(
    origin: PointLike,
    direction: PointLike,
    a: PointLike,
    b: PointLike,
    c: PointLike,
) -> Optional[float]:
    """
    Ray parameter t of the hit with triangle (a, b, c), or None.

    Hits at or behind the origin (t <= EPSILON) and rays parallel to the
    triangle plane are rejected.
    """
    o = _as_point(origin)
    d = _as_point(direction)
    va, vb, vc = _as_point(a), _as_point(b), _as_point(c)

    edge1 = vb - va
    edge2 = vc - va
    h = np.cross(d, edge2)
    det = float(np.dot(edge1, h))
    if abs(det) < EPSILON:
        return None

    f = 1.0 / det
    s = o - va
    u = f * float(np.dot(s, h))
    if u < 0.0 or u > 1.0:
        return None

    q = np.cross(s, edge1)
    v = f * float(np.dot(d, q))
    if v < 0.0 or v > 1.0 or u + v > 1.0:
        return None

    t = f * float(np.dot(edge2, q))
    return t if t > EPSILON else None


def _hit_mask(origin: np.ndarray, direction: np.ndarray, record: GeometryRecord) -> np.ndarray:
    faces = record.faces
    positions = record.positions
    va = positions[faces[:, 0]]
    edge1 = positions[faces[:, 1]] - va
    edge2 = positions[faces[:, 2]] - va

    h = np.cross(direction, edge2)
    det = np.einsum("ij,ij->i", edge1, h)
    parallel = np.abs(det) < EPSILON
    f = 1.0 / np.where(parallel, 1.0, det)

    s = origin - va
    u = f * np.einsum("ij,ij->i", s, h)
    q = np.cross(s, edge1)
    v = f * (q @ direction)
    t = f * np.einsum("ij,ij->i", edge2, q)

    return (
        ~parallel
        & (u >= 0.0) & (u <= 1.0)
        & (v >= 0.0) & (v <= 1.0)
        & (u + v <= 1.0)
        & (t > EPSILON)
    )


def count_ray_hits(record: GeometryRecord, point: PointLike) -> int:
    """Number of triangles crossed by the ray from ``point`` along RAY_DIRECTION."""
    record.check_invariants()
    if record.n_triangles == 0:
        return 0
    return int(np.count_nonzero(_hit_mask(_as_point(point), RAY_DIRECTION, record)))


def is_point_inside(record: GeometryRecord, point: PointLike) -> bool:
    """True when ``point`` is enclosed by the (closed) surface of ``record``."""
    return count_ray_hits(record, point) % 2 == 1
