"""Marching Cubes 등치면 추출.

CT 볼륨에서 임계값 밀도의 경계면을 삼각형 메쉬로 추출한다.
intensity >= threshold인 코너를 내부(조직)로 보며, 면 법선은
고밀도에서 저밀도 방향(바깥)을 향한다.

기본 구현("classic")은 numpy 벡터 연산으로 전체 셀을 한 번에 분류한다.
"lewiner"는 scikit-image 구현을 사용한다.
"""

import logging

import numpy as np

from ..core.mesh import Mesh, compute_vertex_normals
from ..core.volume import Volume
from .tables import CORNER_OFFSETS, EDGE_AXIS, EDGE_START, EDGE_TABLE, TRI_TABLE

logger = logging.getLogger(__name__)

METHODS = ("classic", "lewiner")


def extract_isosurface(
    volume: Volume,
    threshold: float,
    merge_points: bool = True,
    compute_normals: bool = True,
    area_weighted_normals: bool = True,
    method: str = "classic",
) -> Mesh:
    """볼륨에서 등치면 메쉬 추출.

    Args:
        volume: 입력 CT 볼륨
        threshold: 등치면 밀도 (HU)
        merge_points: True면 같은 격자 변(또는 겹친 격자점)의 정점을 하나로
            병합하고, 병합으로 면적이 사라진 삼각형은 제외
        compute_normals: 정점 법선 계산 여부
        area_weighted_normals: 법선 평균 시 면적 가중 여부
        method: "classic" 또는 "lewiner"

    Returns:
        등치면 메쉬. 임계값이 데이터 범위 밖이면 빈 메쉬.

    Raises:
        ValueError: 알 수 없는 method
    """
    if method not in METHODS:
        raise ValueError(f"지원하지 않는 method: {method} (가능: {', '.join(METHODS)})")

    threshold = float(threshold)
    lo, hi = volume.intensity_range()
    if not (lo < threshold <= hi) or min(volume.dimensions) < 2:
        logger.warning(
            f"등치면 없음: threshold={threshold}, 데이터 범위=[{lo}, {hi}], "
            f"dims={volume.dimensions}"
        )
        return Mesh.empty()

    if method == "lewiner":
        mesh = _extract_lewiner(volume, threshold, merge_points)
    else:
        mesh = _extract_classic(volume, threshold, merge_points)

    if compute_normals:
        mesh.normals = compute_vertex_normals(
            mesh.vertices, mesh.triangles, area_weighted_normals
        )

    if mesh.is_empty:
        logger.warning(f"등치면 없음: threshold={threshold}")
    else:
        logger.info(
            f"등치면 추출 완료: {mesh.n_vertices} 정점, {mesh.n_triangles} 삼각형 "
            f"(threshold={threshold}, method={method})"
        )
    return mesh


def _cube_cases(inside: np.ndarray) -> np.ndarray:
    """셀별 8비트 케이스 인덱스. 비트 i = 코너 i가 바깥."""
    nz, ny, nx = inside.shape
    outside = ~inside
    cube = np.zeros((nz - 1, ny - 1, nx - 1), dtype=np.uint8)
    for bit, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
        corner = outside[dz:dz + nz - 1, dy:dy + ny - 1, dx:dx + nx - 1]
        cube |= corner.astype(np.uint8) << bit
    return cube


def _extract_classic(volume: Volume, threshold: float, merge_points: bool) -> Mesh:
    # 원래 dtype 그대로 분류하고, 보간에 쓰는 변 끝값만 float64로 변환
    grid = volume.as_grid()
    nz, ny, nx = grid.shape
    n_points = nx * ny * nz

    cube = _cube_cases(grid >= np.float64(threshold))
    active = EDGE_TABLE[cube] != 0
    if not active.any():
        return Mesh.empty()

    ck, cj, ci = np.nonzero(active)
    cases = cube[active]
    cell_xyz = np.stack([ci, cj, ck], axis=1).astype(np.int64)

    # 셀당 최대 5개 삼각형
    tri = TRI_TABLE[cases][:, :15].reshape(-1, 5, 3)
    valid = tri[:, :, 0] >= 0
    tri_edges = tri[valid].astype(np.int64)                     # (T, 3)
    tri_cell = np.repeat(np.arange(len(cases)), 5)[valid.reshape(-1)]

    edges = tri_edges.reshape(-1)
    cells = np.repeat(tri_cell, 3)
    start = cell_xyz[cells] + EDGE_START[edges]                 # (3T, 3) x,y,z
    axis = EDGE_AXIS[edges]
    end = start.copy()
    end[np.arange(len(end)), axis] += 1

    va = grid[start[:, 2], start[:, 1], start[:, 0]].astype(np.float64)
    vb = grid[end[:, 2], end[:, 1], end[:, 0]].astype(np.float64)

    # 값이 같은 변은 보간 불가, 해당 삼각형 제외
    denom = vb - va
    flat = denom == 0
    t = np.where(flat, 0.0, (threshold - va) / np.where(flat, 1.0, denom))
    bad = (flat | ~np.isfinite(t)).reshape(-1, 3).any(axis=1)
    if bad.any():
        logger.debug(f"보간 불가 변이 포함된 삼각형 {int(bad.sum())}개 제외")

    spacing = np.asarray(volume.spacing)
    origin = np.asarray(volume.origin)
    positions = origin + (start + t[:, None] * (end - start)) * spacing

    keep = np.repeat(~bad, 3)
    positions = positions[keep]
    n_tri = int((~bad).sum())
    if n_tri == 0:
        return Mesh.empty()

    if not merge_points:
        return Mesh(
            vertices=positions,
            triangles=np.arange(3 * n_tri, dtype=np.int64).reshape(n_tri, 3),
        )

    # 격자 변 키: 축 * 점 개수 + 시작점 선형 인덱스.
    # 교차점이 격자점과 겹치면(t가 0 또는 1) 격자점 키 3 * 점 개수 + 선형 인덱스
    t = t[keep]
    axis = axis[keep]
    on_end = t == 1.0
    on_corner = on_end | (t == 0.0)
    point = np.where(on_end[:, None], end[keep], start[keep])
    linear = point[:, 0] + nx * (point[:, 1] + ny * point[:, 2])
    keys = np.where(on_corner, 3 * n_points + linear, axis * n_points + linear)

    _, inverse = np.unique(keys, return_inverse=True)
    tris = inverse.reshape(n_tri, 3)
    collapsed = (
        (tris[:, 0] == tris[:, 1]) | (tris[:, 1] == tris[:, 2]) | (tris[:, 2] == tris[:, 0])
    )
    if collapsed.any():
        logger.debug(f"격자점에서 겹친 삼각형 {int(collapsed.sum())}개 제외")
        keep_tri = np.repeat(~collapsed, 3)
        keys = keys[keep_tri]
        positions = positions[keep_tri]
        n_tri = int((~collapsed).sum())
        if n_tri == 0:
            return Mesh.empty()

    _, first, inverse = np.unique(keys, return_index=True, return_inverse=True)
    inverse = inverse.reshape(-1)

    return Mesh(
        vertices=positions[first],
        triangles=inverse.reshape(n_tri, 3),
    )


def _extract_lewiner(volume: Volume, threshold: float, merge_points: bool) -> Mesh:
    from skimage import measure

    grid = volume.as_grid().astype(np.float64)
    sx, sy, sz = volume.spacing
    verts, faces, _, _ = measure.marching_cubes(
        grid, level=threshold, spacing=(sz, sy, sx), method="lewiner"
    )
    # (z, y, x) → (x, y, z). 축 교환이 반사이므로 scikit-image의 감김이
    # 그대로 고밀도 → 저밀도 방향이 된다
    vertices = verts[:, ::-1].astype(np.float64) + np.asarray(volume.origin)
    triangles = faces.astype(np.int64)

    if not merge_points:
        vertices = vertices[triangles].reshape(-1, 3)
        triangles = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
    return Mesh(vertices=vertices, triangles=triangles)
