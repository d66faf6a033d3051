"""볼륨 파일 로더.

지원 형식:
    - .npz (save_volume_npz로 저장한 파일)
    - SimpleITK가 읽는 의료 영상 (.nii, .nii.gz, .nrrd, .nhdr, .mha, .mhd)
    - DICOM 디렉토리 (슬라이스 수가 가장 많은 시리즈)
"""

import logging
from pathlib import Path

import numpy as np

from ..core.errors import InvalidVolumeError
from ..core.volume import Volume

logger = logging.getLogger(__name__)

SITK_EXTENSIONS = {".nrrd", ".nhdr", ".nii", ".nii.gz", ".mha", ".mhd"}


def _suffix(path: Path) -> str:
    name = path.name.lower()
    return ".nii.gz" if name.endswith(".nii.gz") else path.suffix.lower()


def volume_from_image(image) -> Volume:
    """SimpleITK 이미지를 Volume으로 변환.

    GetArrayFromImage 결과는 (z, y, x) 배열이므로 C 순서 평탄화가
    곧 x가 가장 빠른 순서이다. 방향 행렬은 무시한다.
    """
    import SimpleITK as sitk

    if image.GetDimension() != 3:
        raise InvalidVolumeError(
            f"3D 이미지가 필요합니다: dimension={image.GetDimension()}",
            parameter="dimensions", value=image.GetDimension(),
        )

    direction = np.asarray(image.GetDirection(), dtype=float)
    if not np.allclose(direction, np.eye(3).ravel()):
        logger.debug(f"비단위 방향 행렬 무시: {direction.tolist()}")

    data = sitk.GetArrayFromImage(image)
    return Volume(
        dimensions=tuple(image.GetSize()),
        spacing=tuple(image.GetSpacing()),
        origin=tuple(image.GetOrigin()),
        intensities=data.reshape(-1),
    )


def save_volume_npz(volume: Volume, path: str | Path) -> Path:
    """볼륨을 압축 npz로 저장."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        intensities=volume.intensities,
        dimensions=np.asarray(volume.dimensions),
        spacing=np.asarray(volume.spacing),
        origin=np.asarray(volume.origin),
    )
    return path


def _load_npz(path: Path) -> Volume:
    with np.load(path) as data:
        if "intensities" not in data:
            raise InvalidVolumeError(f"npz에 'intensities' 키가 없습니다: {path}", parameter="intensities")
        intensities = data["intensities"]
        spacing = tuple(data["spacing"]) if "spacing" in data else (1.0, 1.0, 1.0)
        origin = tuple(data["origin"]) if "origin" in data else (0.0, 0.0, 0.0)

        if "dimensions" in data:
            return Volume(tuple(data["dimensions"]), spacing, origin, intensities)
    # dimensions가 없으면 (nx, ny, nz) 배열로 간주
    return Volume.from_array(intensities, spacing=spacing, origin=origin)


def load_volume(path: str | Path) -> Volume:
    """파일 또는 DICOM 디렉토리에서 볼륨 로드.

    Raises:
        FileNotFoundError: 경로 없음
        ValueError: 지원하지 않는 형식
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"파일을 찾을 수 없습니다: {path}")

    if path.is_dir():
        from ..dicom.reader import load_dicom_directory
        volume = load_dicom_directory(path)
    elif _suffix(path) == ".npz":
        volume = _load_npz(path)
    elif _suffix(path) in SITK_EXTENSIONS:
        import SimpleITK as sitk
        volume = volume_from_image(sitk.ReadImage(str(path)))
    else:
        raise ValueError(
            f"지원하지 않는 형식: {path.name} "
            f"(가능: .npz, {', '.join(sorted(SITK_EXTENSIONS))}, DICOM 디렉토리)"
        )

    logger.info(f"볼륨 로드: {path} dims={volume.dimensions} spacing={volume.spacing}")
    return volume
