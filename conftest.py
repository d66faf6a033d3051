"""공용 테스트 fixture: 합성 구 볼륨."""

import numpy as np
import pytest

from ctmesh.core.volume import Volume


def make_sphere_volume(
    n: int = 64,
    radius: float = 20.0,
    inside: float = 1000.0,
    outside: float = 0.0,
    spacing=(1.0, 1.0, 1.0),
    origin=(0.0, 0.0, 0.0),
) -> Volume:
    """격자 중심에 구가 있는 이진 볼륨 (중심 = n/2 인덱스)."""
    c = n / 2
    i, j, k = np.meshgrid(np.arange(n), np.arange(n), np.arange(n), indexing="ij")
    dist = np.sqrt((i - c) ** 2 + (j - c) ** 2 + (k - c) ** 2)
    data = np.where(dist <= radius, inside, outside).astype(np.int16)
    return Volume.from_array(data, spacing=spacing, origin=origin)


def make_distance_volume(n: int = 32, radius: float = 10.0) -> Volume:
    """radius - 거리 값을 갖는 부드러운 구 볼륨 (등치면 0이 구 표면)."""
    c = n / 2
    i, j, k = np.meshgrid(np.arange(n), np.arange(n), np.arange(n), indexing="ij")
    dist = np.sqrt((i - c) ** 2 + (j - c) ** 2 + (k - c) ** 2)
    return Volume.from_array((radius - dist).astype(np.float32))


@pytest.fixture(scope="session")
def sphere_volume():
    """64³, 반지름 20, 중심 32, 내부 1000 / 외부 0."""
    return make_sphere_volume()


@pytest.fixture(scope="session")
def small_sphere_volume():
    """24³ CT 유사 구 (뼈 1000 HU, 공기 -1000 HU)."""
    return make_sphere_volume(n=24, radius=7.0, inside=1000.0, outside=-1000.0)


@pytest.fixture(scope="session")
def distance_volume():
    return make_distance_volume()
