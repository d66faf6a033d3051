"""메쉬 내보내기 파이프라인: 상태 기계.

    idle → extracting → (smoothing) → writing → complete
    error, cancelled: 활성 상태 어디서든 도달 가능한 종료 상태

각 스테이지가 끝나면 (stage, metrics) 진행 이벤트를 보낸다.
스테이지 이름은 "marching-cubes", "smoothing", "writing"이며, 출력이
목적지로 전달된 뒤 빈 metrics와 함께 "complete"를 보낸다.
취소는 스테이지 사이에서만 확인한다.
"""

import asyncio
import functools
import logging
import threading
import time
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.errors import ExportCancelled, MeshExportError, SerializationError
from ..core.mesh import Mesh
from ..core.volume import Volume
from ..io.stl import save_stl
from .config import DensityPreset, ExportConfig, resolve_threshold
from .filename import validate_filename
from .stages import ExtractStage, SmoothStage, StageBase, WriteStage

logger = logging.getLogger(__name__)


class ExportState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SMOOTHING = "smoothing"
    WRITING = "writing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


COMPLETE_STAGE = "complete"


@dataclass(frozen=True)
class ExportMetrics:
    """스테이지별 소요 시간과 삼각형 수 스냅샷. 값은 단조 누적된다."""

    extraction_time_ms: Optional[float] = None
    smoothing_time_ms: Optional[float] = None
    write_time_ms: Optional[float] = None
    total_time_ms: Optional[float] = None
    triangle_count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()

    def as_dict(self) -> dict:
        """값이 있는 항목만 dict로 반환."""
        return {k: v for k, v in asdict(self).items() if v is not None}


ProgressCallback = Callable[[str, ExportMetrics], None]
ErrorCallback = Callable[[str, str], None]
Destination = Callable[[str, bytes], None]


class CancellationToken:
    """협조적 취소 토큰. 여러 스레드에서 cancel()을 호출해도 안전하다."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            raise ExportCancelled("내보내기가 취소되었습니다", stage=stage)


@dataclass
class ExportResult:
    """내보내기 실행 결과.

    Attributes:
        state: 종료 상태 (complete, error, cancelled)
        data: STL 바이트열 (complete일 때만)
        metrics: 마지막 metrics 스냅샷
        mesh: 직렬화된 최종 메쉬 (complete일 때만)
        failed_stage: 실패/취소 시점의 스테이지 이름
        error: 실패 사유
        exception: 실패를 일으킨 원래 예외
        transitions: 거쳐 간 상태 목록
    """

    state: ExportState
    data: Optional[bytes] = None
    metrics: ExportMetrics = field(default_factory=ExportMetrics)
    mesh: Optional[Mesh] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False)
    transitions: list[ExportState] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == ExportState.COMPLETE

    def raise_for_state(self) -> "ExportResult":
        """error면 원래 예외를, cancelled면 ExportCancelled를 던진다."""
        if self.state == ExportState.ERROR:
            if self.exception is not None:
                raise self.exception
            raise MeshExportError(self.error or "내보내기 실패", stage=self.failed_stage or "")
        if self.state == ExportState.CANCELLED:
            raise ExportCancelled("내보내기가 취소되었습니다", stage=self.failed_stage or "")
        return self


class _StageFailed(Exception):
    def __init__(self, stage: str, message: str, error: Optional[BaseException]):
        self.stage = stage
        self.message = message
        self.error = error
        super().__init__(message)


class ExportPipeline:
    """볼륨 한 개를 STL로 내보내는 1회용 상태 기계.

    Args:
        threshold: 등치면 HU 값
        smoothing: 평활화 스테이지 포함 여부
        config: 스테이지 설정 (None이면 기본값)
        on_progress: 스테이지 완료마다 (stage, metrics) 호출
        on_error: 실패 시 (stage, reason) 호출
        cancel_token: 협조적 취소 토큰
    """

    def __init__(
        self,
        threshold: float,
        smoothing: bool = False,
        config: Optional[ExportConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.config = config or ExportConfig.default()
        self.threshold = float(threshold)
        self.smoothing = smoothing
        self.on_progress = on_progress
        self.on_error = on_error
        self.cancel_token = cancel_token or CancellationToken()

        self.state = ExportState.IDLE
        self.transitions: list[ExportState] = [ExportState.IDLE]
        self.metrics = ExportMetrics()

    def _transition(self, state: ExportState) -> None:
        logger.debug(f"상태 전이: {self.state.value} → {state.value}")
        self.state = state
        self.transitions.append(state)

    def _emit(self, stage: str, metrics: ExportMetrics) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(stage, metrics)
        except Exception:
            logger.exception(f"진행 콜백 오류 (stage={stage}), 계속 진행")

    def _stage_log(self, stage: str, details: dict) -> None:
        logger.debug(f"[{stage}] {details.get('message', '')}")

    def _run_stage(self, stage: StageBase, data: Any) -> Any:
        result = stage.run(data, self._stage_log)
        if not result.success:
            raise _StageFailed(stage.name, result.message, result.error)
        logger.info(f"[{stage.name}] {result.message} ({result.elapsed_ms:.1f} ms)")
        return result

    def _check_cancel(self, stage: str) -> None:
        self.cancel_token.raise_if_cancelled(stage)

    def run(
        self,
        volume: Volume,
        filename: Optional[str] = None,
        destination: Optional[Destination] = None,
    ) -> ExportResult:
        """파이프라인 실행.

        Args:
            volume: 입력 볼륨
            filename: 목적지에 넘길 파일명
            destination: (filename, data)를 받는 출력 콜백

        Returns:
            종료 상태의 ExportResult

        Raises:
            RuntimeError: 이미 실행한 파이프라인
        """
        if self.state != ExportState.IDLE:
            raise RuntimeError(f"이미 실행된 파이프라인입니다 (state={self.state.value})")

        current_stage = ExtractStage.name
        mesh: Optional[Mesh] = None
        try:
            self._check_cancel(current_stage)
            start = time.perf_counter()

            self._transition(ExportState.EXTRACTING)
            extracted = self._run_stage(ExtractStage(self.threshold, self.config.extract), volume)
            mesh = extracted.output
            self.metrics = replace(
                self.metrics,
                extraction_time_ms=extracted.elapsed_ms,
                triangle_count=mesh.n_triangles,
            )
            self._emit(ExtractStage.name, self.metrics)

            if self.smoothing:
                current_stage = SmoothStage.name
                self._check_cancel(current_stage)
                self._transition(ExportState.SMOOTHING)
                stage = SmoothStage(
                    self.config.smooth,
                    area_weighted_normals=self.config.extract.area_weighted_normals,
                )
                smoothed = self._run_stage(stage, mesh)
                mesh = smoothed.output
                self.metrics = replace(
                    self.metrics,
                    smoothing_time_ms=smoothed.elapsed_ms,
                    triangle_count=mesh.n_triangles,
                )
                self._emit(SmoothStage.name, self.metrics)

            current_stage = WriteStage.name
            self._check_cancel(current_stage)
            self._transition(ExportState.WRITING)
            written = self._run_stage(WriteStage(self.config.write), mesh)
            data = written.output
            self.metrics = replace(
                self.metrics,
                write_time_ms=written.elapsed_ms,
                total_time_ms=(time.perf_counter() - start) * 1000,
            )
            self._emit(WriteStage.name, self.metrics)

            self._check_cancel(current_stage)
            if destination is not None:
                self._deliver(destination, filename or "", data)

        except ExportCancelled:
            logger.info(f"내보내기 취소 (stage={current_stage})")
            self._transition(ExportState.CANCELLED)
            return ExportResult(
                state=self.state,
                metrics=self.metrics,
                failed_stage=current_stage,
                transitions=list(self.transitions),
            )
        except _StageFailed as f:
            return self._fail(f.stage, f.message, f.error)

        self._transition(ExportState.COMPLETE)
        self._emit(COMPLETE_STAGE, ExportMetrics())
        logger.info(
            f"내보내기 완료: {self.metrics.triangle_count} 삼각형, "
            f"{len(data)} bytes, {self.metrics.total_time_ms:.1f} ms"
        )
        return ExportResult(
            state=self.state,
            data=data,
            metrics=self.metrics,
            mesh=mesh,
            transitions=list(self.transitions),
        )

    def _deliver(self, destination: Destination, filename: str, data: bytes) -> None:
        try:
            destination(filename, data)
        except SerializationError as e:
            raise _StageFailed(WriteStage.name, str(e), e) from e
        except OSError as e:
            err = SerializationError(f"출력 실패: {e}", stage=WriteStage.name)
            raise _StageFailed(WriteStage.name, str(err), err) from e
        except Exception as e:
            raise _StageFailed(WriteStage.name, f"출력 실패: {e}", e) from e

    def _fail(self, stage: str, message: str, error: Optional[BaseException]) -> ExportResult:
        logger.error(f"내보내기 실패 (stage={stage}): {message}")
        self._transition(ExportState.ERROR)
        if error is None:
            error = MeshExportError(message, stage=stage)
        elif isinstance(error, MeshExportError) and not error.stage:
            error.stage = stage

        if self.on_error is not None:
            try:
                self.on_error(stage, message)
            except Exception:
                logger.exception(f"오류 콜백 오류 (stage={stage})")

        return ExportResult(
            state=self.state,
            metrics=self.metrics,
            failed_stage=stage,
            error=message,
            exception=error,
            transitions=list(self.transitions),
        )


def export_mesh(
    volume: Volume,
    filename: str,
    threshold: float | str | DensityPreset = DensityPreset.HIGH_DENSITY,
    smoothing: bool = False,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[ExportConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
    destination: Optional[Destination] = None,
    on_error: Optional[ErrorCallback] = None,
) -> ExportResult:
    """볼륨을 STL로 내보내기.

    Args:
        volume: 입력 CT 볼륨
        filename: 출력 파일명 (검증 후 destination에 전달)
        threshold: HU 값, 숫자 문자열 또는 프리셋 이름
        smoothing: 평활화 여부
        on_progress: (stage, metrics) 진행 콜백
        config: 스테이지 설정
        cancel_token: 취소 토큰
        destination: (filename, data) 출력 콜백. None이면 결과의 data만 채운다.
        on_error: (stage, reason) 실패 콜백

    Returns:
        ExportResult

    Raises:
        InvalidFilenameError: 파일명 검증 실패
        ValueError: 알 수 없는 임계값 프리셋
    """
    validate_filename(filename)
    pipeline = ExportPipeline(
        resolve_threshold(threshold),
        smoothing=smoothing,
        config=config,
        on_progress=on_progress,
        on_error=on_error,
        cancel_token=cancel_token,
    )
    return pipeline.run(volume, filename=filename, destination=destination)


async def export_mesh_async(
    volume: Volume,
    filename: str,
    threshold: float | str | DensityPreset = DensityPreset.HIGH_DENSITY,
    smoothing: bool = False,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[ExportConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
    destination: Optional[Destination] = None,
    on_error: Optional[ErrorCallback] = None,
    executor=None,
) -> ExportResult:
    """export_mesh를 스레드풀에서 실행.

    대기 중인 태스크가 취소되면 토큰을 취소해 다음 스테이지 경계에서
    실행이 멈추도록 한다. 콜백은 작업 스레드에서 호출된다.
    """
    token = cancel_token or CancellationToken()
    loop = asyncio.get_running_loop()
    call = functools.partial(
        export_mesh,
        volume,
        filename,
        threshold,
        smoothing,
        on_progress,
        config=config,
        cancel_token=token,
        destination=destination,
        on_error=on_error,
    )
    try:
        return await loop.run_in_executor(executor, call)
    except asyncio.CancelledError:
        token.cancel()
        raise


def directory_destination(directory: str | Path) -> Destination:
    """<directory>/<filename>.stl로 저장하는 목적지 생성."""
    directory = Path(directory)

    def write(filename: str, data: bytes) -> None:
        validate_filename(filename)
        directory.mkdir(parents=True, exist_ok=True)
        name = filename if filename.lower().endswith(".stl") else f"{filename}.stl"
        save_stl(data, directory / name)

    return write
