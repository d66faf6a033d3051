"""DICOM 레코드를 환자 → 스터디 → 시리즈로 분류."""

from typing import Iterable, Iterator, Optional

from .records import DicomRecord

SeriesGroups = dict[str, dict[str, dict[str, list[DicomRecord]]]]


def group_records(records: Iterable[DicomRecord]) -> SeriesGroups:
    """레코드를 3단계 매핑으로 분류.

    DICOM이 아닌 레코드는 제외한다. 각 시리즈 목록은 입력 순서를 유지하며
    입력을 수정하지 않는다.

    Args:
        records: DicomRecord 목록

    Returns:
        {patient_id: {study_instance_id: {series_instance_id: [record, ...]}}}
    """
    groups: SeriesGroups = {}
    for record in records:
        if not record.is_dicom:
            continue
        studies = groups.setdefault(record.patient_id, {})
        series = studies.setdefault(record.study_instance_id, {})
        series.setdefault(record.series_instance_id, []).append(record)
    return groups


def iter_series(groups: SeriesGroups) -> Iterator[tuple[str, str, str, list[DicomRecord]]]:
    """(patient, study, series, records) 순회."""
    for patient_id, studies in groups.items():
        for study_id, series in studies.items():
            for series_id, members in series.items():
                yield patient_id, study_id, series_id, members


def count_records(groups: SeriesGroups) -> int:
    return sum(len(members) for *_, members in iter_series(groups))


def largest_series(groups: SeriesGroups) -> Optional[list[DicomRecord]]:
    """슬라이스 수가 가장 많은 시리즈. 동률이면 먼저 나온 시리즈."""
    best: Optional[list[DicomRecord]] = None
    for *_, members in iter_series(groups):
        if best is None or len(members) > len(best):
            best = members
    return best
