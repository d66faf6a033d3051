"""STL 직렬화 스테이지: Mesh → bytes."""

import time
from typing import Any, Callable, Optional

from ...core.mesh import Mesh
from ...io.stl import write_ascii_stl, write_binary_stl
from ..config import WriteConfig
from .base import StageBase, StageResult


class WriteStage(StageBase):
    """메쉬를 STL 바이트열로 직렬화하는 스테이지."""

    name = "writing"

    def __init__(self, config: Optional[WriteConfig] = None):
        self.config = config or WriteConfig()

    def validate_input(self, data: Any) -> bool:
        return isinstance(data, Mesh)

    def run(
        self,
        data: Any,
        progress_callback: Optional[Callable[[str, dict], None]] = None,
    ) -> StageResult:
        """STL 직렬화 실행."""
        start = time.perf_counter()

        if not self.validate_input(data):
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=0.0,
                message=f"입력이 Mesh가 아닙니다: {type(data).__name__}",
            )

        fmt = "binary" if self.config.binary else "ascii"
        if progress_callback:
            progress_callback(self.name, {
                "message": f"STL 직렬화 ({fmt}, {data.n_triangles} 삼각형)"
            })

        try:
            if self.config.binary:
                payload = write_binary_stl(data, header=self.config.header)
            else:
                payload = write_ascii_stl(data, name=self.config.solid_name).encode("ascii")
        except Exception as e:
            return StageResult(
                success=False,
                output=None,
                elapsed_ms=(time.perf_counter() - start) * 1000,
                message=f"STL 직렬화 실패: {e}",
                error=e,
            )

        return StageResult(
            success=True,
            output=payload,
            elapsed_ms=(time.perf_counter() - start) * 1000,
            message=f"{len(payload)} bytes ({fmt})",
        )
