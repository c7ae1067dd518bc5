"""
Geometry record

In-memory triangle mesh: vertex positions, accumulated (unnormalized) vertex
normals and a flat triangle index buffer, three entries per triangle with
counter-clockwise winding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import numpy as np
import trimesh

from .normals import recalculate_normals


INDEX_DTYPE = np.int32
POSITION_DTYPE = np.float64


@dataclass(frozen=True)
class Triangle:
    """
    Transient triangle view: three vertex indices into a record.

    Positions are looked up in the record at call time, so a view stays valid
    while the vertex buffer is reallocated (e.g. during subdivision).
    """

    a: int
    b: int
    c: int

    @classmethod
    def at(cls, indices: np.ndarray, triangle: int) -> "Triangle":
        start = 3 * int(triangle)
        return cls(int(indices[start]), int(indices[start + 1]), int(indices[start + 2]))

    def positions(self, record: "GeometryRecord") -> np.ndarray:
        """(3, 3) positions of A, B, C."""
        return record.positions[[self.a, self.b, self.c]]

    def normal(self, record: "GeometryRecord") -> np.ndarray:
        """Face normal cross(A - B, C - B), not normalized."""
        pa, pb, pc = self.positions(record)
        return np.cross(pa - pb, pc - pb)

    def area(self, record: "GeometryRecord") -> float:
        return 0.5 * float(np.linalg.norm(self.normal(record)))


@dataclass(eq=False)
class GeometryRecord:
    """
    Triangle mesh buffers.

    Attributes:
        positions: (N, 3) vertex positions
        indices: (3T,) int32 triangle vertex indices
        normals: (N, 3) accumulated vertex normals (sum of incident face
            normals, not unit length)
        filepath: source file, when loaded from disk
    """
    positions: np.ndarray
    indices: np.ndarray
    normals: Optional[np.ndarray] = None
    filepath: Optional[Path] = None

    # In-flight statistics computation, see statistics.begin_statistics
    _statistics_handle: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=POSITION_DTYPE).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=INDEX_DTYPE).reshape(-1)
        if self.normals is None:
            self.normals = np.zeros_like(self.positions)
        else:
            self.normals = np.asarray(self.normals, dtype=POSITION_DTYPE).reshape(-1, 3)

    @classmethod
    def from_arrays(cls, positions, indices, *, filepath: Optional[Path] = None) -> "GeometryRecord":
        """Build a record and compute its normals."""
        record = cls(positions=positions, indices=indices, filepath=filepath)
        record.check_invariants()
        recalculate_normals(record)
        return record

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh, filepath: Optional[Path] = None) -> "GeometryRecord":
        """Build a record from a trimesh object (face order and winding kept)."""
        return cls.from_arrays(
            np.asarray(mesh.vertices, dtype=POSITION_DTYPE),
            np.asarray(mesh.faces, dtype=INDEX_DTYPE).reshape(-1),
            filepath=filepath,
        )

    def to_trimesh(self) -> trimesh.Trimesh:
        """trimesh object sharing no buffers with the record."""
        return trimesh.Trimesh(
            vertices=self.positions.copy(),
            faces=self.faces.copy(),
            process=False,
        )

    @property
    def n_vertices(self) -> int:
        return len(self.positions)

    @property
    def n_triangles(self) -> int:
        return len(self.indices) // 3

    @property
    def faces(self) -> np.ndarray:
        """(T, 3) view of the index buffer."""
        return self.indices.reshape(-1, 3)

    @property
    def vertices(self) -> np.ndarray:
        """Interleaved (N, 6) float32 buffer [px, py, pz, nx, ny, nz] for upload."""
        return np.hstack([self.positions, self.normals]).astype(np.float32)

    @property
    def statistics_pending(self) -> bool:
        handle = self._statistics_handle
        return handle is not None and not handle.done()

    def triangle(self, i: int) -> Triangle:
        if not 0 <= int(i) < self.n_triangles:
            raise IndexError(f"Triangle index out of range: {i}")
        return Triangle.at(self.indices, i)

    def iter_triangles(self) -> Iterator[Triangle]:
        for i in range(self.n_triangles):
            yield Triangle.at(self.indices, i)

    def check_invariants(self) -> None:
        """
        Fail fast on a broken record.

        Raises:
            ValueError: index buffer length not a multiple of 3, an index
                outside the vertex range, or mismatched normal buffer
        """
        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            raise ValueError(f"positions must be (N, 3), got {self.positions.shape}")
        if self.normals is None or self.normals.shape != self.positions.shape:
            shape = None if self.normals is None else self.normals.shape
            raise ValueError(f"normals must match positions {self.positions.shape}, got {shape}")
        if len(self.indices) % 3 != 0:
            raise ValueError(f"Index count {len(self.indices)} is not a multiple of 3")
        if self.indices.size:
            lo = int(self.indices.min())
            hi = int(self.indices.max())
            if lo < 0 or hi >= self.n_vertices:
                raise ValueError(
                    f"Index out of range: [{lo}, {hi}] with {self.n_vertices} vertices"
                )
