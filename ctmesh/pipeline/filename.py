"""출력 파일명 검증."""

from ..core.errors import InvalidFilenameError

MAX_FILENAME_LENGTH = 128
FORBIDDEN_CHARS = '<>:"/\\|?*'


def validate_filename(filename: str) -> str:
    """출력 파일명 검증 후 그대로 반환.

    Raises:
        InvalidFilenameError: 빈 문자열, 128자 초과, 금지 문자 포함
    """
    if not filename:
        raise InvalidFilenameError("파일명이 비어 있습니다", filename=filename)
    if len(filename) > MAX_FILENAME_LENGTH:
        raise InvalidFilenameError(
            f"파일명은 {MAX_FILENAME_LENGTH}자 이하여야 합니다 (현재 {len(filename)}자)",
            filename=filename,
        )
    bad = sorted({c for c in filename if c in FORBIDDEN_CHARS})
    if bad:
        raise InvalidFilenameError(
            f"파일명에 사용할 수 없는 문자: {' '.join(bad)}", filename=filename
        )
    return filename
