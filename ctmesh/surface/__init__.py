"""등치면 추출 및 메쉬 평활화."""

from .marching_cubes import extract_isosurface
from .smoothing import fixed_vertex_mask, smooth_mesh, windowed_sinc_coefficients

__all__ = [
    "extract_isosurface",
    "smooth_mesh",
    "fixed_vertex_mask",
    "windowed_sinc_coefficients",
]
