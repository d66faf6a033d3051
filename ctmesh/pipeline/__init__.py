"""메쉬 내보내기 파이프라인."""

from .config import (
    HU_THRESHOLDS,
    DensityPreset,
    ExportConfig,
    ExtractConfig,
    SmoothConfig,
    WriteConfig,
    resolve_threshold,
)
from .export import (
    CancellationToken,
    ExportMetrics,
    ExportPipeline,
    ExportResult,
    ExportState,
    directory_destination,
    export_mesh,
    export_mesh_async,
)
from .filename import validate_filename

__all__ = [
    "DensityPreset",
    "HU_THRESHOLDS",
    "resolve_threshold",
    "ExportConfig",
    "ExtractConfig",
    "SmoothConfig",
    "WriteConfig",
    "ExportState",
    "ExportMetrics",
    "ExportResult",
    "ExportPipeline",
    "CancellationToken",
    "export_mesh",
    "export_mesh_async",
    "directory_destination",
    "validate_filename",
]
