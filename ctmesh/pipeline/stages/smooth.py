"""평활화 스테이지: Mesh → Mesh."""

import time
from typing import Any, Callable, Optional

from ...core.mesh import Mesh
from ...surface.smoothing import smooth_mesh
from ..config import SmoothConfig
from .base import StageBase, StageResult


class SmoothStage(StageBase):
    """Windowed-sinc 평활화 스테이지."""

    name = "smoothing"

    def __init__(self, config: Optional[SmoothConfig] = None, area_weighted_normals: bool = True):
        self.config = config or SmoothConfig()
        self.area_weighted_normals = area_weighted_normals

    def validate_input(self, data: Any) -> bool:
        return isinstance(data, Mesh)

    def run(
        self,
        data: Any,
        progress_callback: Optional[Callable[[str, dict], None]] = None,
    ) -> StageResult:
        """평활화 실행."""
        start = time.perf_counter()

        if not self.validate_input(data):
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=0.0,
                message=f"입력이 Mesh가 아닙니다: {type(data).__name__}",
            )

        if progress_callback:
            progress_callback(self.name, {
                "message": f"평활화 시작 ({data.n_vertices} 정점, iterations={self.config.iterations})"
            })

        try:
            smoothed = smooth_mesh(
                data,
                area_weighted_normals=self.area_weighted_normals,
                **self.config.model_dump(),
            )
        except Exception as e:
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=(time.perf_counter() - start) * 1000,
                message=f"평활화 실패: {e}",
                error=e,
            )

        return StageResult(
            success=True,
            output=smoothed,
            elapsed_ms=(time.perf_counter() - start) * 1000,
            message=f"{smoothed.n_vertices}개 정점 평활화",
        )
