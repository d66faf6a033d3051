"""Marching Cubes 등치면 추출 테스트."""

import numpy as np
import pytest

from ctmesh.core.volume import Volume
from ctmesh.surface.marching_cubes import extract_isosurface
from ctmesh.surface.tables import EDGE_TABLE, TRI_TABLE

SQRT3 = float(np.sqrt(3.0))


def _radii(mesh, center):
    return np.linalg.norm(mesh.vertices - np.asarray(center), axis=1)


def _face_dots(mesh, center):
    """면적이 있는 면의 (법선 · (면 중심 - center))."""
    normals = mesh.face_normals()
    nonzero = np.linalg.norm(normals, axis=1) > 0
    centers = mesh.vertices[mesh.triangles].mean(axis=1)
    dots = np.einsum("ij,ij->i", normals, centers - np.asarray(center))
    return dots[nonzero]


def _anisotropic_distance_volume(n=24, radius=6.5):
    c = n // 2
    i, j, k = np.meshgrid(*(np.arange(n),) * 3, indexing="ij")
    dist = np.sqrt((i - c) ** 2 + (j - c) ** 2 + (k - c) ** 2)
    spacing, origin = (0.5, 1.0, 2.0), (1.0, 2.0, 3.0)
    vol = Volume.from_array((radius - dist).astype(np.float32), spacing=spacing, origin=origin)
    center = np.asarray(origin) + c * np.asarray(spacing)
    return vol, center


class TestTables:
    """조회 테이블 무결성."""

    def test_shapes(self):
        assert EDGE_TABLE.shape == (256,)
        assert TRI_TABLE.shape == (256, 16)

    def test_trivial_cases_empty(self):
        assert EDGE_TABLE[0] == 0 and EDGE_TABLE[255] == 0
        assert np.all(TRI_TABLE[0] == -1) and np.all(TRI_TABLE[255] == -1)

    def test_edges_consistent(self):
        """TRI_TABLE이 쓰는 변은 EDGE_TABLE 비트와 일치."""
        for case in range(256):
            used = {e for e in TRI_TABLE[case] if e >= 0}
            mask = sum(1 << e for e in used)
            assert mask == EDGE_TABLE[case], case


class TestSphere:
    """64³ 구 (반지름 20, 중심 32)."""

    def test_accuracy(self, sphere_volume):
        """모든 정점이 반지름에서 복셀 대각선 이내."""
        mesh = extract_isosurface(sphere_volume, 500)
        assert mesh.n_triangles > 0
        r = _radii(mesh, (32, 32, 32))
        assert np.all(np.abs(r - 20.0) <= SQRT3)
        assert np.all(r <= 21.0)

    def test_welded_indices_valid(self, sphere_volume):
        mesh = extract_isosurface(sphere_volume, 500)
        assert mesh.triangles.min() >= 0
        assert mesh.triangles.max() < mesh.n_vertices
        # 병합 시 정점은 여러 삼각형이 공유
        assert mesh.n_vertices < mesh.n_triangles

    def test_normals(self, sphere_volume):
        mesh = extract_isosurface(sphere_volume, 500)
        assert mesh.normals is not None
        assert mesh.normals.shape == mesh.vertices.shape
        lengths = np.linalg.norm(mesh.normals, axis=1)
        nonzero = lengths > 0
        np.testing.assert_allclose(lengths[nonzero], 1.0, atol=1e-9)

    def test_no_normals(self, sphere_volume):
        mesh = extract_isosurface(sphere_volume, 500, compute_normals=False)
        assert mesh.normals is None

    def test_spacing_and_origin(self):
        """월드 좌표 = origin + index * spacing."""
        data = np.zeros((20, 20, 20), dtype=np.int16)
        c = 10
        i, j, k = np.meshgrid(*(np.arange(20),) * 3, indexing="ij")
        data[(i - c) ** 2 + (j - c) ** 2 + (k - c) ** 2 <= 36] = 1000
        vol = Volume.from_array(data, spacing=(0.5, 1.0, 2.0), origin=(100.0, -50.0, 10.0))
        mesh = extract_isosurface(vol, 500)
        lo, hi = mesh.bounds()
        center = np.array([100.0 + 10 * 0.5, -50.0 + 10 * 1.0, 10.0 + 10 * 2.0])
        np.testing.assert_allclose((lo + hi) / 2, center, atol=0.5 * 2.0)
        assert hi[2] - lo[2] > hi[0] - lo[0]


class TestOrientation:
    """면 법선이 고밀도 → 저밀도(바깥)를 향함."""

    def test_outward_faces(self, distance_volume):
        mesh = extract_isosurface(distance_volume, 0.0)
        dots = _face_dots(mesh, (16.0, 16.0, 16.0))
        assert len(dots) > 0
        assert np.all(dots > 0)

    def test_outward_faces_anisotropic(self):
        """비등방 spacing과 origin에서도 바깥 방향."""
        vol, center = _anisotropic_distance_volume()
        dots = _face_dots(extract_isosurface(vol, 0.0), center)
        assert len(dots) > 0
        assert np.all(dots > 0)

    def test_outward_vertex_normals(self, distance_volume):
        mesh = extract_isosurface(distance_volume, 0.0)
        dots = np.einsum("ij,ij->i", mesh.normals, mesh.vertices - 16.0)
        assert np.mean(dots > 0) > 0.95

    def test_inverted_density(self):
        """저밀도 구(공동)는 법선이 중심을 향함."""
        n, c = 24, 12
        i, j, k = np.meshgrid(*(np.arange(n),) * 3, indexing="ij")
        dist = np.sqrt((i - c) ** 2 + (j - c) ** 2 + (k - c) ** 2)
        vol = Volume.from_array((dist - 6.0).astype(np.float32))
        dots = _face_dots(extract_isosurface(vol, 0.0), (c, c, c))
        assert len(dots) > 0
        assert np.all(dots < 0)


class TestEdgeCases:
    """경계 조건."""

    def test_threshold_above_max(self, sphere_volume):
        mesh = extract_isosurface(sphere_volume, 1001)
        assert mesh.is_empty
        assert mesh.n_vertices == 0

    def test_threshold_at_min(self, sphere_volume):
        """모든 복셀이 내부면 등치면 없음."""
        assert extract_isosurface(sphere_volume, 0).is_empty

    def test_uniform_volume(self):
        vol = Volume((4, 4, 4), (1, 1, 1), (0, 0, 0), np.full(64, 7, dtype=np.int16))
        assert extract_isosurface(vol, 7).is_empty

    def test_single_slice(self):
        """z 방향 1장짜리 볼륨은 셀이 없음."""
        vol = Volume((4, 4, 1), (1, 1, 1), (0, 0, 0), np.arange(16, dtype=np.int16))
        assert extract_isosurface(vol, 5).is_empty

    def test_single_inside_voxel(self):
        """내부 코너 하나 → 닫힌 팔면체 (삼각형 8개, 정점 6개)."""
        data = np.zeros((3, 3, 3), dtype=np.int16)
        data[1, 1, 1] = 100
        mesh = extract_isosurface(Volume.from_array(data), 50)
        assert mesh.n_triangles == 8
        assert mesh.n_vertices == 6
        np.testing.assert_allclose(
            np.sort(np.linalg.norm(mesh.vertices - 1.0, axis=1)), np.full(6, 0.5)
        )

    def test_no_merge(self, small_sphere_volume):
        """병합 끄면 삼각형마다 고유 정점 3개."""
        merged = extract_isosurface(small_sphere_volume, 300)
        raw = extract_isosurface(small_sphere_volume, 300, merge_points=False)
        assert raw.n_triangles == merged.n_triangles
        assert raw.n_vertices == 3 * raw.n_triangles
        assert merged.n_vertices < raw.n_vertices
        np.testing.assert_array_equal(raw.triangles.ravel(), np.arange(raw.n_vertices))

    def test_unknown_method(self, small_sphere_volume):
        with pytest.raises(ValueError):
            extract_isosurface(small_sphere_volume, 300, method="dual")


class TestLewiner:
    """scikit-image Lewiner 구현."""

    def test_sphere(self, sphere_volume):
        pytest.importorskip("skimage")
        mesh = extract_isosurface(sphere_volume, 500, method="lewiner")
        assert mesh.n_triangles > 0
        r = _radii(mesh, (32, 32, 32))
        assert np.all(np.abs(r - 20.0) <= SQRT3)

    def test_empty_outside_range(self, sphere_volume):
        pytest.importorskip("skimage")
        assert extract_isosurface(sphere_volume, 5000, method="lewiner").is_empty

    def test_outward_faces(self):
        """classic과 같은 방향 (고밀도 → 저밀도)."""
        pytest.importorskip("skimage")
        vol, center = _anisotropic_distance_volume()
        mesh = extract_isosurface(vol, 0.0, method="lewiner")
        dots = _face_dots(mesh, center)
        assert len(dots) > 0
        assert np.all(dots > 0)

        classic = extract_isosurface(vol, 0.0)
        np.testing.assert_allclose(mesh.bounds()[0], classic.bounds()[0], atol=1e-4)
        np.testing.assert_allclose(mesh.bounds()[1], classic.bounds()[1], atol=1e-4)

    def test_outward_vertex_normals(self):
        pytest.importorskip("skimage")
        vol, center = _anisotropic_distance_volume()
        mesh = extract_isosurface(vol, 0.0, method="lewiner")
        dots = np.einsum("ij,ij->i", mesh.normals, mesh.vertices - center)
        assert np.mean(dots > 0) > 0.95


class TestLatticeHits:
    """임계값이 복셀 값과 정확히 같을 때."""

    def test_corner_vertices_welded(self, sphere_volume):
        """격자점에 놓인 정점은 하나로 병합되고 면적 0 삼각형이 없음."""
        mesh = extract_isosurface(sphere_volume, 1000)
        assert mesh.n_triangles > 0
        tris = mesh.triangles
        assert not np.any(
            (tris[:, 0] == tris[:, 1]) | (tris[:, 1] == tris[:, 2]) | (tris[:, 2] == tris[:, 0])
        )
        assert len(np.unique(mesh.vertices, axis=0)) == mesh.n_vertices
        assert np.all(mesh.face_areas() > 0)
        # 모든 교차점이 내부 복셀 중심
        np.testing.assert_array_equal(mesh.vertices, np.round(mesh.vertices))
        r = _radii(mesh, (32, 32, 32))
        assert np.all(r <= 20.0)

    def test_single_voxel_at_threshold(self):
        """부피 없는 단일 복셀 등치면은 빈 메쉬."""
        data = np.zeros((3, 3, 3), dtype=np.int16)
        data[1, 1, 1] = 100
        assert extract_isosurface(Volume.from_array(data), 100).is_empty

    def test_no_merge_keeps_raw_triangles(self):
        """병합을 끄면 겹친 삼각형도 그대로 남음."""
        data = np.zeros((3, 3, 3), dtype=np.int16)
        data[1, 1, 1] = 100
        raw = extract_isosurface(Volume.from_array(data), 100, merge_points=False)
        assert raw.n_triangles == 8
        np.testing.assert_allclose(raw.vertices, 1.0)


class TestIntensityDtype:
    """입력 dtype과 무관한 결과."""

    @pytest.mark.parametrize("threshold", [300, 299.5])
    def test_int16_matches_float64(self, small_sphere_volume, threshold):
        v = small_sphere_volume
        as_float = Volume(v.dimensions, v.spacing, v.origin, v.intensities.astype(np.float64))
        a = extract_isosurface(v, threshold)
        b = extract_isosurface(as_float, threshold)
        np.testing.assert_array_equal(a.vertices, b.vertices)
        np.testing.assert_array_equal(a.triangles, b.triangles)
