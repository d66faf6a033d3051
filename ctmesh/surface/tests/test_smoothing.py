"""Windowed-sinc 평활화 테스트."""

import numpy as np
import pytest

from ctmesh.core.mesh import Mesh, compute_vertex_normals
from ctmesh.surface.marching_cubes import extract_isosurface
from ctmesh.surface.smoothing import (
    fixed_vertex_mask,
    smooth_mesh,
    windowed_sinc_coefficients,
)


def _grid_patch(n: int = 6, noise: float = 0.0, seed: int = 0) -> Mesh:
    """n x n 정점의 열린 평면 패치 (z에 노이즈)."""
    rng = np.random.default_rng(seed)
    xs, ys = np.meshgrid(np.arange(n, dtype=float), np.arange(n, dtype=float), indexing="xy")
    zs = rng.normal(0.0, noise, size=xs.shape) if noise else np.zeros_like(xs)
    vertices = np.stack([xs.ravel(), ys.ravel(), zs.ravel()], axis=1)
    tris = []
    for j in range(n - 1):
        for i in range(n - 1):
            a = j * n + i
            tris.append([a, a + 1, a + n + 1])
            tris.append([a, a + n + 1, a + n])
    return Mesh(vertices, tris)


def _box() -> Mesh:
    """정육면체 표면 (면마다 중심 정점이 있는 24 삼각형)."""
    corners = np.array([[x, y, z] for z in (0, 1) for y in (0, 1) for x in (0, 1)], dtype=float)
    faces = [
        (0, 2, 3, 1), (4, 5, 7, 6),   # z=0, z=1
        (0, 1, 5, 4), (2, 6, 7, 3),   # y=0, y=1
        (0, 4, 6, 2), (1, 3, 7, 5),   # x=0, x=1
    ]
    vertices = list(corners)
    tris = []
    for quad in faces:
        center = corners[list(quad)].mean(axis=0)
        c = len(vertices)
        vertices.append(center)
        for k in range(4):
            tris.append([quad[k], quad[(k + 1) % 4], c])
    return Mesh(np.array(vertices), tris)


class TestCoefficients:
    """필터 계수."""

    def test_length(self):
        assert len(windowed_sinc_coefficients(15, 0.1)) == 16

    def test_passband_unity(self):
        """통과 대역 경계에서 응답 ~1."""
        c = windowed_sinc_coefficients(20, 0.1)
        theta = np.arccos(1 - 0.05)
        response = np.sum(c * np.cos(np.arange(21) * theta))
        assert abs(response - 1.0) < 0.05

    def test_low_order(self):
        c = windowed_sinc_coefficients(1, 0.5)
        assert c.shape == (2,)
        assert np.all(np.isfinite(c))


class TestValidation:
    """인자 검증."""

    @pytest.mark.parametrize("pass_band", [0.0, 1.0, -0.1, 2.0])
    def test_pass_band_range(self, pass_band):
        with pytest.raises(ValueError):
            smooth_mesh(_grid_patch(), pass_band=pass_band)

    def test_negative_iterations(self):
        with pytest.raises(ValueError):
            smooth_mesh(_grid_patch(), iterations=-1)


class TestSmoothing:
    """평활화 동작."""

    def test_zero_iterations_identity(self, small_sphere_volume):
        mesh = extract_isosurface(small_sphere_volume, 300)
        out = smooth_mesh(mesh, iterations=0)
        np.testing.assert_array_equal(out.vertices, mesh.vertices)
        np.testing.assert_array_equal(out.triangles, mesh.triangles)
        assert out is not mesh

    def test_preserves_connectivity(self, small_sphere_volume):
        mesh = extract_isosurface(small_sphere_volume, 300)
        out = smooth_mesh(mesh)
        assert out.n_triangles == mesh.n_triangles
        assert out.n_vertices == mesh.n_vertices
        np.testing.assert_array_equal(out.triangles, mesh.triangles)

    def test_input_not_mutated(self, small_sphere_volume):
        mesh = extract_isosurface(small_sphere_volume, 300)
        before = mesh.vertices.copy()
        smooth_mesh(mesh, iterations=20)
        np.testing.assert_array_equal(mesh.vertices, before)

    def test_sphere_rounder(self, sphere_volume):
        """계단 모양 구가 더 둥글어짐 (반지름 편차 감소, 크기 유지)."""
        mesh = extract_isosurface(sphere_volume, 500)
        out = smooth_mesh(mesh, iterations=20, pass_band=0.05)
        r0 = np.linalg.norm(mesh.vertices - 32.0, axis=1)
        r1 = np.linalg.norm(out.vertices - 32.0, axis=1)
        assert r1.std() < r0.std()
        assert abs(r1.mean() - r0.mean()) < 0.5

    def test_normals_recomputed(self, small_sphere_volume):
        mesh = extract_isosurface(small_sphere_volume, 300)
        out = smooth_mesh(mesh)
        assert out.normals is not None
        assert out.normals.shape == out.vertices.shape

    @pytest.mark.parametrize("area_weighted", [True, False])
    def test_normals_weighting(self, sphere_volume, area_weighted):
        """평활화 후 법선도 추출과 같은 가중 방식으로 계산."""
        mesh = extract_isosurface(sphere_volume, 500, area_weighted_normals=area_weighted)
        out = smooth_mesh(mesh, area_weighted_normals=area_weighted)
        expected = compute_vertex_normals(out.vertices, out.triangles, area_weighted)
        other = compute_vertex_normals(out.vertices, out.triangles, not area_weighted)
        np.testing.assert_allclose(out.normals, expected)
        assert not np.allclose(out.normals, other)

    def test_noisy_patch_flattens(self):
        """노이즈 평면의 내부 정점 z 편차 감소, 경계는 고정."""
        mesh = _grid_patch(n=10, noise=0.1, seed=1)
        out = smooth_mesh(mesh, iterations=20, pass_band=0.05)
        fixed = fixed_vertex_mask(mesh)
        interior = ~fixed
        assert np.std(out.vertices[interior, 2]) < np.std(mesh.vertices[interior, 2])
        np.testing.assert_array_equal(out.vertices[fixed], mesh.vertices[fixed])

    def test_boundary_free_when_not_preserved(self):
        mesh = _grid_patch(n=8, noise=0.2, seed=2)
        out = smooth_mesh(mesh, iterations=20, preserve_boundary=False)
        corner_moved = np.linalg.norm(out.vertices[0] - mesh.vertices[0])
        assert corner_moved > 0

    def test_feature_edges_fixed(self):
        """정육면체 모서리(90°)는 특징선 보존 시 움직이지 않음."""
        mesh = _box()
        out = smooth_mesh(mesh, iterations=10, preserve_feature_edges=True, feature_angle=30.0)
        np.testing.assert_allclose(out.vertices[:8], mesh.vertices[:8])

    def test_empty_mesh(self):
        out = smooth_mesh(Mesh.empty())
        assert out.is_empty


class TestFixedVertexMask:
    """고정 정점 판정."""

    def test_boundary(self):
        mesh = _grid_patch(n=4)
        fixed = fixed_vertex_mask(mesh, preserve_boundary=True)
        # 4x4 패치: 가장자리 12개 고정, 내부 4개 자유
        assert fixed.sum() == 12
        assert not fixed_vertex_mask(mesh, preserve_boundary=False).any()

    def test_isolated_always_fixed(self):
        mesh = _grid_patch(n=3)
        vertices = np.vstack([mesh.vertices, [[10.0, 10.0, 10.0]]])
        mesh = Mesh(vertices, mesh.triangles)
        fixed = fixed_vertex_mask(mesh, preserve_boundary=False)
        assert fixed[-1]
        assert fixed.sum() == 1

    def test_non_manifold(self):
        """비다양체 변 정점: non_manifold_smoothing 끄면 고정."""
        vertices = np.array([
            [0, 0, 0], [1, 0, 0],
            [0.5, 1, 0], [0.5, -1, 0], [0.5, 0, 1],
        ], dtype=float)
        mesh = Mesh(vertices, [[0, 1, 2], [1, 0, 3], [0, 1, 4]])
        fixed = fixed_vertex_mask(mesh, preserve_boundary=True, non_manifold_smoothing=False)
        assert fixed[0] and fixed[1]
        # 비다양체 정점 0, 1 외에 열린 변 정점도 고정
        assert fixed.all()

    def test_feature_edges(self):
        mesh = _box()
        fixed = fixed_vertex_mask(mesh, preserve_feature_edges=True, feature_angle=30.0)
        assert fixed[:8].all()
        assert not fixed[8:].any()
        assert not fixed_vertex_mask(mesh).any()
