"""STL 직렬화.

바이너리 STL 레이아웃 (리틀 엔디언):
    80 바이트 헤더
    uint32 삼각형 개수
    삼각형마다 float32 x 12 (면 법선, 정점 3개) + uint16 속성 = 50 바이트

기록되는 법선은 저장된 정점 법선이 아니라 삼각형 정점에서 다시 계산한
면 법선이다 (퇴화 삼각형은 0 벡터).
"""

import logging
import struct
from pathlib import Path

import numpy as np

from ..core.errors import SerializationError
from ..core.mesh import Mesh

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
RECORD_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attr", "<u2"),
])
DEFAULT_HEADER = b"ctmesh binary STL"


def _header_bytes(header: str | bytes) -> bytes:
    if isinstance(header, str):
        header = header.encode("ascii", errors="replace")
    return header[:HEADER_SIZE].ljust(HEADER_SIZE, b"\0")


def write_binary_stl(mesh: Mesh, header: str | bytes = DEFAULT_HEADER) -> bytes:
    """메쉬를 바이너리 STL 바이트열로 변환. 길이는 84 + 50 * M."""
    records = np.zeros(mesh.n_triangles, dtype=RECORD_DTYPE)
    if mesh.n_triangles:
        records["normal"] = mesh.face_normals()
        records["vertices"] = mesh.vertices[mesh.triangles]

    return b"".join([
        _header_bytes(header),
        struct.pack("<I", mesh.n_triangles),
        records.tobytes(),
    ])


def write_ascii_stl(mesh: Mesh, name: str = "ctmesh") -> str:
    """메쉬를 ASCII STL 문자열로 변환."""
    lines = [f"solid {name}"]
    if mesh.n_triangles:
        normals = mesh.face_normals()
        corners = mesh.vertices[mesh.triangles]
        for n, tri in zip(normals, corners):
            lines.append(f"  facet normal {n[0]:e} {n[1]:e} {n[2]:e}")
            lines.append("    outer loop")
            for v in tri:
                lines.append(f"      vertex {v[0]:e} {v[1]:e} {v[2]:e}")
            lines.append("    endloop")
            lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"


def _is_binary(data: bytes) -> bool:
    if len(data) < HEADER_SIZE + 4:
        return False
    count = struct.unpack_from("<I", data, HEADER_SIZE)[0]
    return HEADER_SIZE + 4 + RECORD_DTYPE.itemsize * count == len(data)


def read_stl(data: bytes | str) -> Mesh:
    """바이너리 또는 ASCII STL을 메쉬로 읽기.

    정점은 병합하지 않으므로 삼각형마다 정점 3개를 가진다.

    Raises:
        ValueError: STL 형식이 아님
    """
    if isinstance(data, bytes) and _is_binary(data):
        count = struct.unpack_from("<I", data, HEADER_SIZE)[0]
        records = np.frombuffer(data, dtype=RECORD_DTYPE, count=count, offset=HEADER_SIZE + 4)
        vertices = records["vertices"].reshape(-1, 3).astype(np.float64)
    else:
        text = data.decode("ascii", errors="strict") if isinstance(data, bytes) else data
        if not text.lstrip().startswith("solid"):
            raise ValueError("STL 형식이 아닙니다")
        coords = [
            [float(v) for v in line.split()[1:4]]
            for line in text.splitlines()
            if line.strip().startswith("vertex")
        ]
        if len(coords) % 3:
            raise ValueError(f"ASCII STL 정점 수가 3의 배수가 아닙니다: {len(coords)}")
        vertices = np.asarray(coords, dtype=np.float64).reshape(-1, 3)

    return Mesh(
        vertices=vertices,
        triangles=np.arange(len(vertices), dtype=np.int64).reshape(-1, 3),
    )


def save_stl(data: bytes | str, path: str | Path, chunk_size: int = 1 << 20) -> int:
    """STL 데이터를 파일로 기록.

    Returns:
        기록한 바이트 수

    Raises:
        SerializationError: 쓰기 실패. offset은 실패 전까지 기록된 바이트 수.
    """
    if isinstance(data, str):
        data = data.encode("ascii")
    path = Path(path)
    offset = 0
    try:
        with open(path, "wb") as f:
            view = memoryview(data)
            while offset < len(data):
                written = f.write(view[offset:offset + chunk_size])
                offset += written
    except OSError as e:
        raise SerializationError(f"{path} 쓰기 실패: {e}", offset=offset) from e

    logger.info(f"STL 저장: {path} ({offset} bytes)")
    return offset
