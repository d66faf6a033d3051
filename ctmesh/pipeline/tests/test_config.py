"""내보내기 설정 테스트."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from ctmesh.pipeline.config import (
    CONFIG_ENV_VAR,
    HU_THRESHOLDS,
    DensityPreset,
    ExportConfig,
    ExtractConfig,
    SmoothConfig,
    WriteConfig,
    resolve_threshold,
)

REPO_CONFIG = Path(__file__).resolve().parents[3] / "config" / "export.toml"


class TestExportConfig:
    """ExportConfig 테스트."""

    def test_default_config(self):
        """기본 설정 생성."""
        cfg = ExportConfig.default()
        assert cfg.extract.merge_points is True
        assert cfg.extract.method == "classic"
        assert cfg.smooth.iterations == 15
        assert cfg.smooth.pass_band == 0.1
        assert cfg.smooth.preserve_boundary is True
        assert cfg.smooth.preserve_feature_edges is False
        assert cfg.smooth.feature_angle == 45.0
        assert cfg.smooth.non_manifold_smoothing is True
        assert cfg.smooth.normalize_coordinates is True
        assert cfg.write.binary is True

    def test_smooth_validation(self):
        """pass_band (0, 1), iterations >= 0."""
        with pytest.raises(ValidationError):
            SmoothConfig(pass_band=1.0)
        with pytest.raises(ValidationError):
            SmoothConfig(iterations=-1)

    def test_extract_method(self):
        assert ExtractConfig(method="lewiner").method == "lewiner"
        with pytest.raises(ValidationError):
            ExtractConfig(method="dual")

    def test_header_length(self):
        with pytest.raises(ValidationError):
            WriteConfig(header="x" * 81)

    def test_from_toml(self):
        """TOML 파일에서 로드."""
        toml_content = """
[smooth]
iterations = 30
pass_band = 0.05

[write]
binary = false
solid_name = "bone"
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write(toml_content)
            f.flush()
            cfg = ExportConfig.from_toml(f.name)

        assert cfg.smooth.iterations == 30
        assert cfg.smooth.pass_band == 0.05
        assert cfg.smooth.preserve_boundary is True  # 기본값 유지
        assert cfg.write.binary is False
        assert cfg.write.solid_name == "bone"
        assert cfg.extract.merge_points is True

        Path(f.name).unlink()

    def test_from_toml_missing(self):
        with pytest.raises(FileNotFoundError):
            ExportConfig.from_toml("/nonexistent/path.toml")

    def test_bundled_config_matches_defaults(self):
        assert ExportConfig.from_toml(REPO_CONFIG) == ExportConfig.default()

    def test_load_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "env.toml"
        path.write_text("[smooth]\niterations = 7\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert ExportConfig.load().smooth.iterations == 7

    def test_load_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert ExportConfig.load() == ExportConfig.default()


class TestThresholds:
    """임계값 프리셋."""

    def test_preset_values(self):
        assert HU_THRESHOLDS[DensityPreset.HIGH_DENSITY] == 300
        assert HU_THRESHOLDS[DensityPreset.MEDIUM_DENSITY] == 40
        assert HU_THRESHOLDS[DensityPreset.LOW_DENSITY] == -50

    @pytest.mark.parametrize("value, expected", [
        ("HIGH_DENSITY", 300.0),
        ("medium_density", 40.0),
        (DensityPreset.LOW_DENSITY, -50.0),
        (250, 250.0),
        (-120.5, -120.5),
        ("175", 175.0),
    ])
    def test_resolve(self, value, expected):
        assert resolve_threshold(value) == expected

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            resolve_threshold("BONE")

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            resolve_threshold(True)
