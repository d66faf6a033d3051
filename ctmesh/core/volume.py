"""CT 스칼라 볼륨 자료구조.

밀도(HU) 값을 담는 3D 격자. 생성 후 변경할 수 없으며,
여러 내보내기 작업이 동시에 읽어도 안전하다.
"""

from dataclasses import dataclass

import numpy as np

from .errors import InvalidVolumeError


@dataclass(frozen=True)
class Volume:
    """불변 3D 스칼라 볼륨.

    Attributes:
        dimensions: 격자 크기 (nx, ny, nz)
        spacing: 복셀 간격 (sx, sy, sz) [mm]
        origin: 첫 복셀의 월드 좌표 (ox, oy, oz)
        intensities: 길이 nx*ny*nz 1차원 배열, x가 가장 빠르게 변함
    """

    dimensions: tuple[int, int, int]
    spacing: tuple[float, float, float]
    origin: tuple[float, float, float]
    intensities: np.ndarray

    def __post_init__(self):
        dims = tuple(int(d) for d in self.dimensions)
        if len(dims) != 3 or any(d <= 0 for d in dims):
            raise InvalidVolumeError(
                f"차원은 양의 정수 3개여야 합니다: {self.dimensions}",
                parameter="dimensions", value=self.dimensions,
            )

        spacing = tuple(float(s) for s in self.spacing)
        if len(spacing) != 3 or not all(np.isfinite(s) and s > 0 for s in spacing):
            raise InvalidVolumeError(
                f"spacing은 양의 실수 3개여야 합니다: {self.spacing}",
                parameter="spacing", value=self.spacing,
            )

        origin = tuple(float(o) for o in self.origin)
        if len(origin) != 3 or not all(np.isfinite(o) for o in origin):
            raise InvalidVolumeError(
                f"origin은 유한한 실수 3개여야 합니다: {self.origin}",
                parameter="origin", value=self.origin,
            )

        data = np.asarray(self.intensities)
        if data.size == 0:
            raise InvalidVolumeError("intensity 배열이 비어 있습니다", parameter="intensities")
        if not np.issubdtype(data.dtype, np.number) or np.issubdtype(data.dtype, np.complexfloating):
            raise InvalidVolumeError(
                f"intensity는 실수형이어야 합니다: {data.dtype}",
                parameter="intensities", value=data.dtype,
            )
        data = data.reshape(-1)
        expected = dims[0] * dims[1] * dims[2]
        if data.size != expected:
            raise InvalidVolumeError(
                f"intensity 길이 {data.size} != nx*ny*nz {expected}",
                parameter="intensities", value=data.size,
            )

        # 호출자 배열과 분리된 읽기 전용 사본
        data = data.copy()
        data.flags.writeable = False

        object.__setattr__(self, "dimensions", dims)
        object.__setattr__(self, "spacing", spacing)
        object.__setattr__(self, "origin", origin)
        object.__setattr__(self, "intensities", data)

    @classmethod
    def from_array(
        cls,
        data: np.ndarray,
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
        origin: tuple[float, float, float] = (0.0, 0.0, 0.0),
    ) -> "Volume":
        """(nx, ny, nz) 배열(x, y, z 순서)에서 볼륨 생성."""
        data = np.asarray(data)
        if data.ndim != 3:
            raise InvalidVolumeError(
                f"3차원 배열이 필요합니다: shape={data.shape}",
                parameter="intensities", value=data.shape,
            )
        return cls(
            dimensions=data.shape,
            spacing=spacing,
            origin=origin,
            intensities=data.ravel(order="F"),
        )

    @property
    def n_voxels(self) -> int:
        nx, ny, nz = self.dimensions
        return nx * ny * nz

    def as_grid(self) -> np.ndarray:
        """(nz, ny, nx) 읽기 전용 뷰 반환. grid[k, j, i]는 복셀 (i, j, k)."""
        nx, ny, nz = self.dimensions
        return self.intensities.reshape(nz, ny, nx)

    def intensity_range(self) -> tuple[float, float]:
        """(최소, 최대) intensity."""
        return float(self.intensities.min()), float(self.intensities.max())

    def world_extent(self) -> tuple[np.ndarray, np.ndarray]:
        """첫 복셀과 마지막 복셀 중심의 월드 좌표 (min, max)."""
        origin = np.asarray(self.origin)
        last = (np.asarray(self.dimensions) - 1) * np.asarray(self.spacing)
        return origin, origin + last

    def center(self) -> np.ndarray:
        lo, hi = self.world_extent()
        return (lo + hi) / 2
