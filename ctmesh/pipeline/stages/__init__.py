"""내보내기 파이프라인 스테이지."""

from .base import StageBase, StageResult
from .extract import ExtractStage
from .smooth import SmoothStage
from .write import WriteStage

__all__ = ["StageBase", "StageResult", "ExtractStage", "SmoothStage", "WriteStage"]
