"""CT 볼륨 → 3D 프린팅용 STL 메쉬 변환."""

from .core import InvalidVolumeError, Mesh, MeshExportError, Volume
from .pipeline import (
    CancellationToken,
    DensityPreset,
    ExportConfig,
    ExportResult,
    ExportState,
    export_mesh,
    export_mesh_async,
)

__version__ = "0.1.0"

__all__ = [
    "Volume",
    "Mesh",
    "MeshExportError",
    "InvalidVolumeError",
    "DensityPreset",
    "ExportConfig",
    "ExportState",
    "ExportResult",
    "CancellationToken",
    "export_mesh",
    "export_mesh_async",
]
