"""Windowed-sinc 메쉬 평활화.

정점 그래프(삼각형 변을 공유하는 정점이 이웃) 위의 저역 통과 필터.
Hamming 창을 씌운 Chebyshev 다항식 전개로 sinc 필터를 근사하므로
Laplacian 평활화와 달리 부피 수축이 거의 없다.

    K = I - L/2        (L: 정규화 그래프 Laplacian)
    x_0 = x,  x_1 = K x_0,  x_{n+1} = 2 K x_n - x_{n-1}
    결과 = Σ c_n x_n

고정 정점(경계, 특징선, 고립점)은 원래 위치를 유지하며
연결성(삼각형 목록)은 변하지 않는다.
"""

import logging
import math

import numpy as np
from scipy import sparse

from ..core.mesh import Mesh

logger = logging.getLogger(__name__)

_NEWTON_MAX_ITER = 500
_NEWTON_TOL = 1e-3


def windowed_sinc_coefficients(iterations: int, pass_band: float) -> np.ndarray:
    """필터 계수 c_0..c_N 계산.

    통과 대역 경계에서 응답이 1이 되도록 Newton 반복으로 차단 주파수
    이동량(sigma)을 맞춘다.

    Args:
        iterations: 전개 차수 N
        pass_band: 통과 대역 (0, 1)

    Returns:
        (N+1,) 계수 배열
    """
    n = int(iterations)
    theta_pb = math.acos(1.0 - 0.5 * pass_band)
    i = np.arange(n + 1)
    window = 0.54 + 0.46 * np.cos(i * np.pi / (n + 1))
    cos_terms = np.cos(i * theta_pb)

    def coefficients(sigma: float) -> np.ndarray:
        c = np.empty(n + 1)
        arg = theta_pb + sigma
        c[0] = window[0] * arg / np.pi
        if n > 0:
            k = i[1:]
            c[1:] = window[1:] * 2.0 * np.sin(k * arg) / (k * np.pi)
        return c

    sigma = 0.0
    c = coefficients(sigma)
    if n < 2:
        return c

    converged = False
    for _ in range(_NEWTON_MAX_ITER):
        c = coefficients(sigma)
        f = float(np.dot(c, cos_terms))
        if abs(f - 1.0) < _NEWTON_TOL:
            converged = True
            break

        cprime = np.zeros(n + 1)
        cprime[n - 2] = 2.0 * (n - 1) * c[n - 1]
        for j in range(n - 3, -1, -1):
            cprime[j] = cprime[j + 2] + 2.0 * (j + 1) * c[j + 1]
        fprime = float(np.dot(cprime, cos_terms))
        if fprime == 0.0:
            break
        sigma -= (f - 1.0) / fprime

    if not converged:
        logger.warning(
            f"windowed-sinc 계수 수렴 실패 (iterations={n}, pass_band={pass_band})"
        )
    return c


def fixed_vertex_mask(
    mesh: Mesh,
    preserve_boundary: bool = True,
    preserve_feature_edges: bool = False,
    feature_angle: float = 45.0,
    non_manifold_smoothing: bool = True,
) -> np.ndarray:
    """평활화에서 움직이지 않을 정점 마스크.

    - 고립 정점 (어떤 삼각형 변에도 속하지 않음): 항상
    - 열린 변(삼각형 1개) 정점: preserve_boundary
    - 비다양체 변(삼각형 3개 이상) 정점: preserve_boundary이고
      non_manifold_smoothing이 꺼져 있을 때
    - 이면각이 feature_angle을 넘는 변의 정점: preserve_feature_edges
    """
    n = mesh.n_vertices
    topo = mesh.edge_topology()
    fixed = np.ones(n, dtype=bool)

    # 자기 자신으로의 변(퇴화 삼각형)은 이웃으로 치지 않는다
    real = topo.edges[:, 0] != topo.edges[:, 1]
    fixed[topo.edges[real].reshape(-1)] = False

    if preserve_boundary:
        fixed[topo.edges[topo.face_counts == 1].reshape(-1)] = True
        if not non_manifold_smoothing:
            fixed[topo.edges[topo.face_counts > 2].reshape(-1)] = True

    if preserve_feature_edges and len(topo.manifold_face_pairs) > 0:
        fn = mesh.face_normals()
        a = fn[topo.manifold_face_pairs[:, 0]]
        b = fn[topo.manifold_face_pairs[:, 1]]
        dots = np.einsum("ij,ij->i", a, b)
        has_normal = (np.abs(a).sum(axis=1) > 0) & (np.abs(b).sum(axis=1) > 0)
        sharp = has_normal & (dots < math.cos(math.radians(feature_angle)))
        fixed[topo.edges[topo.manifold_edges[sharp]].reshape(-1)] = True

    return fixed


def _neighbor_average_operator(mesh: Mesh) -> sparse.csr_matrix:
    """P = D^-1 A. P @ x는 각 정점의 이웃 평균."""
    n = mesh.n_vertices
    edges = mesh.edge_topology().edges
    edges = edges[edges[:, 0] != edges[:, 1]]
    rows = np.concatenate([edges[:, 0], edges[:, 1]])
    cols = np.concatenate([edges[:, 1], edges[:, 0]])
    adj = sparse.csr_matrix(
        (np.ones(len(rows)), (rows, cols)), shape=(n, n)
    )
    degree = np.asarray(adj.sum(axis=1)).reshape(-1)
    inv = np.zeros(n)
    inv[degree > 0] = 1.0 / degree[degree > 0]
    return sparse.diags(inv) @ adj


def smooth_mesh(
    mesh: Mesh,
    iterations: int = 15,
    pass_band: float = 0.1,
    preserve_boundary: bool = True,
    preserve_feature_edges: bool = False,
    feature_angle: float = 45.0,
    non_manifold_smoothing: bool = True,
    normalize_coordinates: bool = True,
    area_weighted_normals: bool = True,
) -> Mesh:
    """Windowed-sinc 평활화. 입력 메쉬는 수정하지 않는다.

    Args:
        mesh: 입력 메쉬
        iterations: 필터 차수 (0이면 동일한 메쉬 반환)
        pass_band: 통과 대역, 작을수록 강한 평활화
        preserve_boundary: 열린 변 정점 고정
        preserve_feature_edges: 특징선 정점 고정
        feature_angle: 특징선 판정 이면각 [도]
        non_manifold_smoothing: 비다양체 변 정점도 평활화
        normalize_coordinates: 계산 전 좌표를 단위 크기로 정규화
        area_weighted_normals: 다시 계산하는 법선의 면적 가중 여부

    Returns:
        같은 삼각형 목록, 새 정점 좌표와 다시 계산한 법선을 가진 메쉬

    Raises:
        ValueError: iterations < 0 또는 pass_band가 (0, 1) 밖
    """
    if iterations < 0:
        raise ValueError(f"iterations는 0 이상이어야 합니다: {iterations}")
    if not (0.0 < pass_band < 1.0):
        raise ValueError(f"pass_band는 (0, 1) 범위여야 합니다: {pass_band}")

    if iterations == 0 or mesh.n_vertices == 0:
        return mesh.copy()

    x0 = mesh.vertices.copy()
    center = np.zeros(3)
    scale = 1.0
    if normalize_coordinates:
        lo, hi = mesh.bounds()
        center = (lo + hi) / 2
        extent = float(np.max(hi - lo))
        if extent > 0:
            scale = extent
        x0 = (x0 - center) / scale

    fixed = fixed_vertex_mask(
        mesh,
        preserve_boundary=preserve_boundary,
        preserve_feature_edges=preserve_feature_edges,
        feature_angle=feature_angle,
        non_manifold_smoothing=non_manifold_smoothing,
    )
    movable = (~fixed).astype(np.float64)[:, None]
    avg = _neighbor_average_operator(mesh)
    coeffs = windowed_sinc_coefficients(iterations, pass_band)

    def half_step(x):
        return x + 0.5 * movable * (avg @ x - x)

    x_prev = x0
    x_curr = half_step(x0)
    result = coeffs[0] * x0 + coeffs[1] * x_curr
    for n in range(2, iterations + 1):
        x_next = 2.0 * half_step(x_curr) - x_prev
        result += coeffs[n] * x_next
        x_prev, x_curr = x_curr, x_next

    if normalize_coordinates:
        result = result * scale + center
    result[fixed] = mesh.vertices[fixed]

    logger.debug(
        f"평활화 완료: {mesh.n_vertices} 정점 (고정 {int(fixed.sum())}), "
        f"iterations={iterations}, pass_band={pass_band}"
    )
    return mesh.with_vertices(result, area_weighted=area_weighted_normals)
