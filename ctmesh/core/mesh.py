"""삼각형 메쉬 자료구조 및 위상 유틸리티."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


def _face_cross(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """삼각형별 (v1-v0)×(v2-v0). 크기는 면적의 2배."""
    if len(triangles) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    v0 = vertices[triangles[:, 0]]
    v1 = vertices[triangles[:, 1]]
    v2 = vertices[triangles[:, 2]]
    return np.cross(v1 - v0, v2 - v0)


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """행 단위 정규화. 길이 0인 행은 0 벡터로 남긴다."""
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    out = np.zeros_like(vectors)
    nonzero = norms[:, 0] > 0
    out[nonzero] = vectors[nonzero] / norms[nonzero]
    return out


def compute_vertex_normals(
    vertices: np.ndarray,
    triangles: np.ndarray,
    area_weighted: bool = True,
) -> np.ndarray:
    """인접 면 법선의 평균으로 정점 법선 계산.

    Args:
        vertices: (N, 3) 정점 좌표
        triangles: (M, 3) 정점 인덱스
        area_weighted: True면 면적 가중 평균, False면 단위 면 법선 평균

    Returns:
        (N, 3) 단위 법선. 어떤 면에도 속하지 않거나 면적이 0인 면에만
        속한 정점은 0 벡터.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    triangles = np.asarray(triangles, dtype=np.int64)
    accum = np.zeros_like(vertices)
    if len(triangles) == 0:
        return accum

    cross = _face_cross(vertices, triangles)
    contrib = cross if area_weighted else _normalize_rows(cross)
    for corner in range(3):
        np.add.at(accum, triangles[:, corner], contrib)
    return _normalize_rows(accum)


@dataclass(frozen=True)
class EdgeTopology:
    """메쉬의 무방향 엣지 위상.

    Attributes:
        edges: (E, 2) 정렬된 정점 쌍 (작은 인덱스 먼저)
        face_counts: (E,) 엣지를 공유하는 삼각형 수
        face_edge: (M, 3) 삼각형 각 변의 엣지 인덱스 (v0v1, v1v2, v2v0 순)
        manifold_face_pairs: (K, 2) 정확히 두 삼각형이 공유하는 엣지의 삼각형 쌍
        manifold_edges: (K,) manifold_face_pairs에 대응하는 엣지 인덱스
    """

    edges: np.ndarray
    face_counts: np.ndarray
    face_edge: np.ndarray
    manifold_face_pairs: np.ndarray
    manifold_edges: np.ndarray

    @property
    def boundary_edges(self) -> np.ndarray:
        """한 삼각형에만 속한 열린 엣지."""
        return self.edges[self.face_counts == 1]

    @property
    def non_manifold_edges(self) -> np.ndarray:
        """세 개 이상의 삼각형이 공유하는 엣지."""
        return self.edges[self.face_counts > 2]


@dataclass
class Mesh:
    """삼각형 메쉬.

    평활화 등 변환은 항상 새 Mesh를 반환하며 입력을 수정하지 않는다.

    Attributes:
        vertices: (N, 3) float64 정점 좌표 [mm]
        triangles: (M, 3) int64 정점 인덱스
        normals: (N, 3) 정점 법선 (없으면 None)
    """

    vertices: np.ndarray
    triangles: np.ndarray
    normals: Optional[np.ndarray] = None

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        self.triangles = np.asarray(self.triangles, dtype=np.int64).reshape(-1, 3)
        if self.normals is not None:
            self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3)
            if len(self.normals) != len(self.vertices):
                raise ValueError(
                    f"법선 개수 {len(self.normals)} != 정점 개수 {len(self.vertices)}"
                )
        if len(self.triangles) > 0:
            lo, hi = int(self.triangles.min()), int(self.triangles.max())
            if lo < 0 or hi >= len(self.vertices):
                raise ValueError(
                    f"삼각형 인덱스 범위 [{lo}, {hi}]가 정점 수 {len(self.vertices)}를 벗어남"
                )

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(
            vertices=np.zeros((0, 3)),
            triangles=np.zeros((0, 3), dtype=np.int64),
            normals=np.zeros((0, 3)),
        )

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return len(self.triangles) == 0

    def face_normals(self) -> np.ndarray:
        """(M, 3) 단위 면 법선. 퇴화 삼각형은 0 벡터."""
        return _normalize_rows(_face_cross(self.vertices, self.triangles))

    def face_areas(self) -> np.ndarray:
        return 0.5 * np.linalg.norm(_face_cross(self.vertices, self.triangles), axis=1)

    def surface_area(self) -> float:
        return float(self.face_areas().sum())

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """(min, max) 좌표. 빈 메쉬는 0 벡터 쌍."""
        if self.n_vertices == 0:
            return np.zeros(3), np.zeros(3)
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def compute_normals(self, area_weighted: bool = True) -> np.ndarray:
        self.normals = compute_vertex_normals(self.vertices, self.triangles, area_weighted)
        return self.normals

    def copy(self) -> "Mesh":
        return Mesh(
            vertices=self.vertices.copy(),
            triangles=self.triangles.copy(),
            normals=None if self.normals is None else self.normals.copy(),
        )

    def with_vertices(self, vertices: np.ndarray, area_weighted: bool = True) -> "Mesh":
        """같은 연결성에 새 좌표를 가진 메쉬. 법선은 다시 계산한다."""
        triangles = self.triangles.copy()
        vertices = np.asarray(vertices, dtype=np.float64)
        return Mesh(
            vertices=vertices,
            triangles=triangles,
            normals=compute_vertex_normals(vertices, triangles, area_weighted),
        )

    def edge_topology(self) -> EdgeTopology:
        """무방향 엣지와 엣지별 삼각형 수, 공유 삼각형 쌍 계산."""
        n_tri = self.n_triangles
        if n_tri == 0:
            return EdgeTopology(
                edges=np.zeros((0, 2), dtype=np.int64),
                face_counts=np.zeros(0, dtype=np.int64),
                face_edge=np.zeros((0, 3), dtype=np.int64),
                manifold_face_pairs=np.zeros((0, 2), dtype=np.int64),
                manifold_edges=np.zeros(0, dtype=np.int64),
            )

        t = self.triangles
        half = np.stack([t[:, [0, 1]], t[:, [1, 2]], t[:, [2, 0]]], axis=1)
        half = np.sort(half.reshape(-1, 2), axis=1)
        edges, inverse, counts = np.unique(
            half, axis=0, return_inverse=True, return_counts=True
        )
        inverse = inverse.reshape(-1)

        # 엣지별로 삼각형 인덱스를 모아 정확히 2개인 경우의 쌍을 만든다
        face_ids = np.repeat(np.arange(n_tri, dtype=np.int64), 3)
        order = np.argsort(inverse, kind="stable")
        starts = np.concatenate([[0], np.cumsum(counts)[:-1]])
        manifold = np.nonzero(counts == 2)[0]
        first = face_ids[order[starts[manifold]]]
        second = face_ids[order[starts[manifold] + 1]]

        return EdgeTopology(
            edges=edges.astype(np.int64),
            face_counts=counts.astype(np.int64),
            face_edge=inverse.reshape(n_tri, 3).astype(np.int64),
            manifold_face_pairs=np.stack([first, second], axis=1),
            manifold_edges=manifold.astype(np.int64),
        )
