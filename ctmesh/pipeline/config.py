"""내보내기 설정: Pydantic 모델 + TOML 로드."""

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

CONFIG_ENV_VAR = "CTMESH_CONFIG"


class DensityPreset(str, Enum):
    """조직 밀도 프리셋 (HU)."""

    HIGH_DENSITY = "HIGH_DENSITY"      # 뼈
    MEDIUM_DENSITY = "MEDIUM_DENSITY"  # 연조직
    LOW_DENSITY = "LOW_DENSITY"        # 지방/피부

    @property
    def hu(self) -> float:
        return HU_THRESHOLDS[self]


HU_THRESHOLDS = {
    DensityPreset.HIGH_DENSITY: 300.0,
    DensityPreset.MEDIUM_DENSITY: 40.0,
    DensityPreset.LOW_DENSITY: -50.0,
}


def resolve_threshold(threshold: float | int | str | DensityPreset) -> float:
    """임계값 지정을 HU 값으로 변환.

    숫자, 숫자 문자열, 프리셋 이름(대소문자 무시), DensityPreset을 받는다.

    Raises:
        ValueError: 알 수 없는 프리셋 이름
    """
    if isinstance(threshold, DensityPreset):
        return threshold.hu
    if isinstance(threshold, bool):
        raise ValueError(f"임계값으로 bool을 사용할 수 없습니다: {threshold}")
    if isinstance(threshold, (int, float)):
        return float(threshold)

    text = str(threshold).strip()
    try:
        return float(text)
    except ValueError:
        pass
    try:
        return DensityPreset(text.upper()).hu
    except ValueError:
        names = ", ".join(p.value for p in DensityPreset)
        raise ValueError(f"알 수 없는 임계값 프리셋: {threshold} (가능: {names} 또는 숫자)") from None


class ExtractConfig(BaseModel):
    """등치면 추출 설정."""

    merge_points: bool = True
    compute_normals: bool = True
    area_weighted_normals: bool = True
    method: Literal["classic", "lewiner"] = "classic"


class SmoothConfig(BaseModel):
    """Windowed-sinc 평활화 설정."""

    iterations: int = Field(default=15, ge=0)
    pass_band: float = Field(default=0.1, gt=0.0, lt=1.0)
    preserve_boundary: bool = True
    preserve_feature_edges: bool = False
    feature_angle: float = Field(default=45.0, ge=0.0, le=180.0)
    non_manifold_smoothing: bool = True
    normalize_coordinates: bool = True


class WriteConfig(BaseModel):
    """STL 출력 설정."""

    binary: bool = True
    solid_name: str = "ctmesh"
    header: str = Field(default="ctmesh binary STL", max_length=80)


class ExportConfig(BaseModel):
    """최상위 내보내기 설정."""

    extract: ExtractConfig = Field(default_factory=ExtractConfig)
    smooth: SmoothConfig = Field(default_factory=SmoothConfig)
    write: WriteConfig = Field(default_factory=WriteConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> "ExportConfig":
        """TOML 파일에서 설정 로드.

        Args:
            path: TOML 파일 경로

        Returns:
            ExportConfig 인스턴스
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def default(cls) -> "ExportConfig":
        """기본 설정 반환."""
        return cls()

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "ExportConfig":
        """명시 경로 → CTMESH_CONFIG 환경 변수 → 기본값 순으로 설정 로드."""
        path = path or os.environ.get(CONFIG_ENV_VAR)
        if path:
            return cls.from_toml(path)
        return cls.default()
