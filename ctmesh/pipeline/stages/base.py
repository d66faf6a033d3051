"""파이프라인 스테이지 기본 클래스."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class StageResult:
    """스테이지 실행 결과."""

    success: bool
    output: Any
    elapsed_ms: float
    message: str = ""
    error: Optional[BaseException] = None


class StageBase(ABC):
    """파이프라인 스테이지 추상 클래스.

    모든 스테이지는 이 클래스를 상속하고
    run()과 validate_input()을 구현해야 한다.
    스테이지는 예외를 던지지 않고 실패를 StageResult로 돌려준다.
    """

    name: str = "base"

    @abstractmethod
    def run(
        self,
        data: Any,
        progress_callback: Optional[Callable[[str, dict], None]] = None,
    ) -> StageResult:
        """스테이지 실행.

        Args:
            data: 이전 스테이지 출력 (볼륨 또는 메쉬)
            progress_callback: 진행률 콜백 (stage, details)

        Returns:
            StageResult 객체
        """
        ...

    @abstractmethod
    def validate_input(self, data: Any) -> bool:
        """입력 유효성 검증.

        Args:
            data: 스테이지 입력

        Returns:
            유효하면 True
        """
        ...
