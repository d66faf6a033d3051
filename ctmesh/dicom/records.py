"""DICOM 파일 레코드."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN = "unknown"


class DicomRecord(BaseModel):
    """DICOM 파일 한 개의 식별 정보.

    식별자(patient/study/series)가 없거나 빈 문자열이면 "unknown"이 된다.
    나머지 서술 필드는 읽은 그대로 전달된다.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    is_dicom: bool = True
    patient_id: str = UNKNOWN
    study_instance_id: str = UNKNOWN
    series_instance_id: str = UNKNOWN

    patient_name: Optional[str] = None
    patient_birth_date: Optional[str] = None
    patient_sex: Optional[str] = None
    study_date: Optional[str] = None
    study_time: Optional[str] = None
    series_description: Optional[str] = None

    @field_validator("patient_id", "study_instance_id", "series_instance_id", mode="before")
    @classmethod
    def _unknown_if_missing(cls, v: Any) -> str:
        if v is None:
            return UNKNOWN
        v = str(v).strip()
        return v or UNKNOWN
