"""DICOM 레코드 스캔 및 시리즈 분류."""

from .grouping import SeriesGroups, count_records, group_records, iter_series, largest_series
from .reader import (
    load_dicom_directory,
    load_series,
    read_dicom_record,
    read_dicom_records,
    scan_directory,
)
from .records import UNKNOWN, DicomRecord

__all__ = [
    "DicomRecord",
    "UNKNOWN",
    "SeriesGroups",
    "group_records",
    "iter_series",
    "count_records",
    "largest_series",
    "read_dicom_record",
    "read_dicom_records",
    "scan_directory",
    "load_series",
    "load_dicom_directory",
]
