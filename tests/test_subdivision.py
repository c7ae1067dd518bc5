import unittest

import numpy as np
import trimesh

from tests.test_containment import _make_cube
from trigeom.core.containment import is_point_inside
from trigeom.core.geometry import GeometryRecord
from trigeom.core.normals import recalculate_normals
from trigeom.core.subdivision import edge_key, subdivide, unique_edge_count


def _make_square() -> GeometryRecord:
    # Two triangles sharing the diagonal (0, 2).
    vertices = np.asarray(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [0.0, 1.0, 0.0],
        ],
        dtype=np.float64,
    )
    return GeometryRecord.from_arrays(vertices, [0, 1, 2, 0, 2, 3])


class TestSubdivision(unittest.TestCase):
    def test_edge_key_is_order_independent(self):
        self.assertEqual(edge_key(3, 7), edge_key(7, 3))
        self.assertEqual(edge_key(3, 7), (3, 7))
        self.assertNotEqual(edge_key(3, 7), edge_key(3, 8))

    def test_single_triangle_topology(self):
        vertices = np.asarray([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.0, 2.0, 0.0]], dtype=np.float64)
        record = GeometryRecord.from_arrays(vertices, [0, 1, 2])

        subdivide(record)

        # Midpoints are created in the order AC, AB, BC.
        np.testing.assert_allclose(record.positions[3], [0.0, 1.0, 0.0])
        np.testing.assert_allclose(record.positions[4], [1.0, 0.0, 0.0])
        np.testing.assert_allclose(record.positions[5], [1.0, 1.0, 0.0])
        self.assertEqual(
            record.faces.tolist(),
            [[0, 4, 3], [3, 4, 5], [3, 5, 2], [4, 1, 5]],
        )
        self.assertEqual(record.indices.dtype, np.int32)

    def test_cardinality_cube(self):
        cube = _make_cube()
        n_indices = len(cube.indices)
        n_vertices = cube.n_vertices
        n_edges = unique_edge_count(cube.indices)
        self.assertEqual(n_edges, 18)

        subdivide(cube)

        self.assertEqual(len(cube.indices), 4 * n_indices)
        self.assertEqual(cube.n_vertices, n_vertices + n_edges)
        self.assertEqual(cube.n_triangles, 48)

    def test_cardinality_matches_trimesh_edges(self):
        mesh = trimesh.creation.icosphere(subdivisions=1)
        record = GeometryRecord.from_trimesh(mesh)
        n_edges = len(mesh.edges_unique)

        subdivide(record)

        self.assertEqual(record.n_vertices, len(mesh.vertices) + n_edges)
        self.assertEqual(record.n_triangles, 4 * len(mesh.faces))

    def test_shared_edge_reuses_midpoint(self):
        record = _make_square()
        subdivide(record)

        # 4 original + 5 unique edges.
        self.assertEqual(record.n_vertices, 9)

        matches = np.flatnonzero(np.all(np.isclose(record.positions, [0.5, 0.5, 0.0]), axis=1))
        self.assertEqual(len(matches), 1)
        mid = int(matches[0])

        first = set(record.faces[0:4].reshape(-1).tolist())
        second = set(record.faces[4:8].reshape(-1).tolist())
        self.assertIn(mid, first)
        self.assertIn(mid, second)

    def test_surface_stays_closed(self):
        cube = _make_cube()
        subdivide(cube, levels=2)

        self.assertTrue(cube.to_trimesh().is_watertight)
        self.assertTrue(is_point_inside(cube, (0.0, 0.0, 0.0)))
        self.assertFalse(is_point_inside(cube, (100.0, 100.0, 100.0)))

    def test_normals_recomputed_after_subdivision(self):
        record = _make_square()
        subdivide(record)

        expected = GeometryRecord(positions=record.positions.copy(), indices=record.indices.copy())
        recalculate_normals(expected)
        np.testing.assert_array_equal(record.normals, expected.normals)
        self.assertEqual(record.normals.shape, record.positions.shape)
        # Flat square: every vertex normal points along -z.
        self.assertTrue(np.all(record.normals[:, 2] < 0.0))

    def test_repeated_levels(self):
        record = _make_square()
        subdivide(record)
        subdivide(record)
        self.assertEqual(record.n_triangles, 2 * 16)

        other = _make_square()
        subdivide(other, levels=2)
        np.testing.assert_array_equal(other.indices, record.indices)
        np.testing.assert_array_equal(other.positions, record.positions)

    def test_invalid_levels(self):
        with self.assertRaises(ValueError):
            subdivide(_make_square(), levels=0)

    def test_broken_record_fails_fast(self):
        record = GeometryRecord(positions=np.zeros((3, 3)), indices=[0, 1, 5])
        with self.assertRaises(ValueError):
            subdivide(record)


if __name__ == "__main__":
    unittest.main()
