"""메쉬 내보내기 예외 정의.

파이프라인 호출자가 실패 단계를 식별할 수 있도록 모든 예외는
stage 속성을 가진다. 빈 등치면(임계값이 데이터 범위 밖)은 예외가 아니다.
"""

from typing import Optional


class MeshExportError(Exception):
    """메쉬 내보내기 오류 기본 클래스.

    Attributes:
        stage: 실패가 발생한 파이프라인 단계 이름 (모르면 빈 문자열)
    """

    def __init__(self, message: str, stage: str = ""):
        self.stage = stage
        super().__init__(message)


class InvalidVolumeError(MeshExportError, ValueError):
    """볼륨 구조 오류 (0 크기 차원, 빈 배열, 길이 불일치 등).

    Attributes:
        parameter: 문제가 된 필드 이름
        value: 전달된 값
    """

    def __init__(self, message: str, parameter: str = "", value=None, stage: str = ""):
        self.parameter = parameter
        self.value = value
        super().__init__(f"[볼륨 오류] {message}", stage=stage)


class SerializationError(MeshExportError, OSError):
    """STL 직렬화/출력 실패.

    Attributes:
        offset: 실패 시점까지 기록된 바이트 수 (알 수 없으면 None)
    """

    def __init__(self, message: str, offset: Optional[int] = None, stage: str = "writing"):
        self.offset = offset
        full_msg = f"[직렬화 오류] {message}"
        if offset is not None:
            full_msg += f" (offset={offset})"
        super().__init__(full_msg, stage=stage)


class InvalidFilenameError(MeshExportError, ValueError):
    """출력 파일명 검증 실패."""

    def __init__(self, message: str, filename: str = ""):
        self.filename = filename
        super().__init__(f"[파일명 오류] {message}")


class ExportCancelled(MeshExportError):
    """사용자 취소. 오류가 아닌 종료 상태로 변환된다."""
