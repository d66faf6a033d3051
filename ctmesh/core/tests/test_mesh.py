"""Mesh 자료구조 및 위상 테스트."""

import numpy as np
import pytest

from ctmesh.core.mesh import Mesh, compute_vertex_normals


def _tetra() -> Mesh:
    """바깥 방향으로 감긴 닫힌 사면체."""
    vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=float)
    triangles = np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]])
    return Mesh(vertices, triangles)


def _open_quad() -> Mesh:
    """삼각형 2개로 된 열린 사각형."""
    vertices = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)
    return Mesh(vertices, [[0, 1, 2], [0, 2, 3]])


class TestMeshBasics:
    """기본 속성."""

    def test_counts(self):
        mesh = _tetra()
        assert mesh.n_vertices == 4
        assert mesh.n_triangles == 4
        assert not mesh.is_empty
        assert mesh.vertices.dtype == np.float64
        assert mesh.triangles.dtype == np.int64

    def test_empty(self):
        mesh = Mesh.empty()
        assert mesh.is_empty
        assert mesh.n_vertices == 0
        lo, hi = mesh.bounds()
        np.testing.assert_array_equal(lo, np.zeros(3))

    def test_index_out_of_range(self):
        with pytest.raises(ValueError):
            Mesh(np.zeros((3, 3)), [[0, 1, 3]])

    def test_normals_length_mismatch(self):
        with pytest.raises(ValueError):
            Mesh(np.zeros((3, 3)), [[0, 1, 2]], normals=np.zeros((2, 3)))

    def test_face_normals_outward(self):
        """사면체 면 법선은 중심에서 바깥을 향함."""
        mesh = _tetra()
        centroid = mesh.vertices.mean(axis=0)
        face_centers = mesh.vertices[mesh.triangles].mean(axis=1)
        dots = np.einsum("ij,ij->i", mesh.face_normals(), face_centers - centroid)
        assert np.all(dots > 0)

    def test_degenerate_face_normal_zero(self):
        mesh = Mesh(np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0]], dtype=float), [[0, 1, 2]])
        np.testing.assert_array_equal(mesh.face_normals(), np.zeros((1, 3)))
        assert mesh.surface_area() == 0.0

    def test_copy_independent(self):
        mesh = _tetra()
        dup = mesh.copy()
        dup.vertices[0] = [9, 9, 9]
        assert mesh.vertices[0, 0] == 0.0


class TestVertexNormals:
    """정점 법선."""

    def test_unit_length(self):
        mesh = _tetra()
        normals = compute_vertex_normals(mesh.vertices, mesh.triangles)
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0)

    def test_flat_quad_normals(self):
        mesh = _open_quad()
        for weighted in (True, False):
            normals = compute_vertex_normals(mesh.vertices, mesh.triangles, weighted)
            np.testing.assert_allclose(normals, np.tile([0, 0, 1.0], (4, 1)))

    def test_unreferenced_vertex_zero(self):
        vertices = np.vstack([_open_quad().vertices, [[5, 5, 5]]])
        normals = compute_vertex_normals(vertices, _open_quad().triangles)
        np.testing.assert_array_equal(normals[4], np.zeros(3))


class TestEdgeTopology:
    """엣지 위상."""

    def test_closed_tetra(self):
        topo = _tetra().edge_topology()
        assert len(topo.edges) == 6
        assert np.all(topo.face_counts == 2)
        assert len(topo.boundary_edges) == 0
        assert len(topo.manifold_face_pairs) == 6

    def test_open_quad(self):
        topo = _open_quad().edge_topology()
        assert len(topo.edges) == 5
        assert len(topo.boundary_edges) == 4
        # 대각선만 두 삼각형이 공유
        assert topo.manifold_face_pairs.tolist() == [[0, 1]]
        np.testing.assert_array_equal(topo.edges[topo.manifold_edges[0]], [0, 2])

    def test_non_manifold(self):
        """세 삼각형이 한 변을 공유."""
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, -1, 0], [0, 0, 1]], dtype=float)
        mesh = Mesh(vertices, [[0, 1, 2], [0, 1, 3], [0, 1, 4]])
        topo = mesh.edge_topology()
        assert topo.non_manifold_edges.tolist() == [[0, 1]]

    def test_face_edge_consistency(self):
        mesh = _tetra()
        topo = mesh.edge_topology()
        assert topo.face_edge.shape == (4, 3)
        for f, tri in enumerate(mesh.triangles):
            for c in range(3):
                edge = topo.edges[topo.face_edge[f, c]]
                expected = sorted((tri[c], tri[(c + 1) % 3]))
                assert edge.tolist() == expected

    def test_empty(self):
        topo = Mesh.empty().edge_topology()
        assert topo.edges.shape == (0, 2)
