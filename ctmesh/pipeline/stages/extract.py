"""등치면 추출 스테이지: Volume → Mesh."""

import time
from typing import Any, Callable, Optional

from ...core.errors import InvalidVolumeError
from ...core.volume import Volume
from ...surface.marching_cubes import extract_isosurface
from ..config import ExtractConfig
from .base import StageBase, StageResult


class ExtractStage(StageBase):
    """Marching Cubes로 임계값 등치면을 추출하는 스테이지."""

    name = "marching-cubes"

    def __init__(self, threshold: float, config: Optional[ExtractConfig] = None):
        self.threshold = float(threshold)
        self.config = config or ExtractConfig()

    def validate_input(self, data: Any) -> bool:
        return isinstance(data, Volume)

    def run(
        self,
        data: Any,
        progress_callback: Optional[Callable[[str, dict], None]] = None,
    ) -> StageResult:
        """등치면 추출 실행."""
        start = time.perf_counter()

        if not self.validate_input(data):
            err = InvalidVolumeError(
                f"입력이 Volume이 아닙니다: {type(data).__name__}",
                parameter="volume", value=type(data).__name__, stage=self.name,
            )
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=0.0,
                message=str(err),
                error=err,
            )

        if progress_callback:
            progress_callback(self.name, {
                "message": f"등치면 추출 시작 (threshold={self.threshold:g}, dims={data.dimensions})"
            })

        try:
            mesh = extract_isosurface(
                data,
                self.threshold,
                merge_points=self.config.merge_points,
                compute_normals=self.config.compute_normals,
                area_weighted_normals=self.config.area_weighted_normals,
                method=self.config.method,
            )
        except Exception as e:
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=(time.perf_counter() - start) * 1000,
                message=f"등치면 추출 실패: {e}",
                error=e,
            )

        return StageResult(
            success=True,
            output=mesh,
            elapsed_ms=(time.perf_counter() - start) * 1000,
            message=f"{mesh.n_triangles}개 삼각형 추출",
        )
