"""볼륨/메쉬 핵심 자료구조."""

from .errors import (
    ExportCancelled,
    InvalidFilenameError,
    InvalidVolumeError,
    MeshExportError,
    SerializationError,
)
from .mesh import EdgeTopology, Mesh, compute_vertex_normals
from .volume import Volume

__all__ = [
    "Volume",
    "Mesh",
    "EdgeTopology",
    "compute_vertex_normals",
    "MeshExportError",
    "InvalidVolumeError",
    "SerializationError",
    "InvalidFilenameError",
    "ExportCancelled",
]
