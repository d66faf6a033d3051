"""STL 직렬화 및 볼륨 파일 입출력."""

from .stl import read_stl, save_stl, write_ascii_stl, write_binary_stl
from .volume_io import load_volume, save_volume_npz, volume_from_image

__all__ = [
    "write_binary_stl",
    "write_ascii_stl",
    "read_stl",
    "save_stl",
    "load_volume",
    "save_volume_npz",
    "volume_from_image",
]
