"""DICOM 파일 스캔 및 시리즈 로드: SimpleITK 기반."""

import logging
from pathlib import Path
from typing import Iterable, Sequence

from ..core.volume import Volume
from .grouping import group_records, largest_series
from .records import UNKNOWN, DicomRecord

logger = logging.getLogger(__name__)

# DICOM 태그 → 레코드 필드 매핑
TAG_MAP = {
    "0010|0020": "patient_id",
    "0010|0010": "patient_name",
    "0010|0030": "patient_birth_date",
    "0010|0040": "patient_sex",
    "0020|000d": "study_instance_id",
    "0008|0020": "study_date",
    "0008|0030": "study_time",
    "0020|000e": "series_instance_id",
    "0008|103e": "series_description",
}


def read_dicom_record(path: str | Path) -> DicomRecord:
    """파일 헤더만 읽어 레코드 생성. DICOM이 아니면 is_dicom=False."""
    import SimpleITK as sitk

    path = Path(path)
    reader = sitk.ImageFileReader()
    reader.SetImageIO("GDCMImageIO")
    reader.SetFileName(str(path))
    try:
        reader.ReadImageInformation()
    except RuntimeError as e:
        logger.debug(f"DICOM 아님: {path} ({e})")
        return DicomRecord(path=str(path), is_dicom=False)

    fields = {}
    for tag, key in TAG_MAP.items():
        if reader.HasMetaDataKey(tag):
            fields[key] = reader.GetMetaData(tag).strip()
    return DicomRecord(path=str(path), is_dicom=True, **fields)


def read_dicom_records(paths: Iterable[str | Path]) -> list[DicomRecord]:
    return [read_dicom_record(p) for p in paths]


def scan_directory(directory: str | Path, recursive: bool = True) -> list[DicomRecord]:
    """디렉토리의 모든 파일을 레코드로 읽기 (경로 순 정렬).

    Raises:
        FileNotFoundError: 디렉토리 없음
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"DICOM 디렉토리 없음: {directory}")

    pattern = "**/*" if recursive else "*"
    files = sorted(p for p in directory.glob(pattern) if p.is_file())
    records = read_dicom_records(files)
    n_dicom = sum(r.is_dicom for r in records)
    logger.info(f"DICOM 스캔: {directory} ({n_dicom}/{len(records)} 파일)")
    return records


def _ordered_file_names(records: Sequence[DicomRecord]) -> list[str]:
    """GDCM 슬라이스 정렬 순서로 파일 목록 반환.

    모든 파일이 한 디렉토리에 있고 시리즈 UID를 알 때만 GDCM 순서를 쓰고,
    그 외에는 레코드 순서를 유지한다.
    """
    import SimpleITK as sitk

    files = [r.path for r in records]
    parents = {str(Path(f).parent) for f in files}
    series_id = records[0].series_instance_id
    if len(parents) != 1 or series_id == UNKNOWN:
        return files

    ordered = sitk.ImageSeriesReader.GetGDCMSeriesFileNames(parents.pop(), series_id)
    wanted = {str(Path(f).resolve()) for f in files}
    ordered = [f for f in ordered if str(Path(f).resolve()) in wanted]
    if len(ordered) != len(files):
        return files
    return list(ordered)


def load_series(records: Sequence[DicomRecord]) -> Volume:
    """한 시리즈의 레코드를 3D 볼륨으로 로드.

    Raises:
        ValueError: DICOM 레코드가 없음
    """
    import SimpleITK as sitk

    from ..io.volume_io import volume_from_image

    records = [r for r in records if r.is_dicom]
    if not records:
        raise ValueError("로드할 DICOM 레코드가 없습니다")

    reader = sitk.ImageSeriesReader()
    reader.SetFileNames(_ordered_file_names(records))
    image = reader.Execute()
    volume = volume_from_image(image)
    logger.info(
        f"시리즈 로드: {records[0].series_instance_id} "
        f"({len(records)} slices, dims={volume.dimensions})"
    )
    return volume


def load_dicom_directory(directory: str | Path) -> Volume:
    """디렉토리에서 슬라이스 수가 가장 많은 시리즈를 로드.

    Raises:
        FileNotFoundError: 디렉토리 없음
        ValueError: 유효한 DICOM 시리즈 없음
    """
    groups = group_records(scan_directory(directory))
    series = largest_series(groups)
    if not series:
        raise ValueError(f"유효한 DICOM 시리즈 없음: {directory}")
    return load_series(series)
