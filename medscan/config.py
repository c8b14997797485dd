from __future__ import annotations

from copy import deepcopy
import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class ExtractorConfig(BaseModel):
    dark_threshold: float = Field(default=50.0, ge=0.0, le=255.0)
    bright_threshold: float = Field(default=200.0, ge=0.0, le=255.0)
    # Only the first N pixels feed the colour-variance check.
    grayscale_sample_size: int = Field(default=1000, ge=1)
    grayscale_variance_max: float = Field(default=30.0, ge=0.0)
    high_contrast: float = Field(default=0.3, ge=0.0, le=2.0)
    dicom_brightness_max: float = Field(default=150.0, ge=0.0, le=255.0)


class ClassifierConfig(BaseModel):
    valid_extensions: tuple[str, ...] = (".dcm", ".dicom", ".jpg", ".jpeg", ".png")
    min_contrast: float = Field(default=0.2, ge=0.0, le=2.0)
    max_brightness: float = Field(default=180.0, ge=0.0, le=255.0)
    min_file_size: int = Field(default=10_000, ge=0)

    xray_contrast: float = 0.4
    mri_brightness_max: float = 100.0
    mri_contrast: float = 0.3
    ct_brightness_min: float = 100.0
    ct_contrast: float = 0.35


class ReportConfig(BaseModel):
    base_confidence: int = 70
    anatomical_bonus: int = 15
    dicom_bonus: int = 10
    contrast_bonus: int = 5
    contrast_bonus_threshold: float = 0.4
    grayscale_bonus: int = 5
    exposure_penalty: int = 10
    underexposed_below: float = 30.0
    overexposed_above: float = 200.0
    low_contrast_penalty: int = 15
    low_contrast_below: float = 0.2
    min_confidence: int = Field(default=60, ge=0, le=100)
    max_confidence: int = Field(default=98, ge=0, le=100)

    abnormal_contrast: float = 0.5
    abnormal_contrast_weight: float = 0.3
    abnormal_brightness: float = 80.0
    abnormal_brightness_weight: float = 0.2
    abnormal_dark_ratio: float = 0.4
    abnormal_dark_weight: float = 0.2
    abnormal_bright_ratio: float = 0.1
    abnormal_bright_weight: float = 0.3
    abnormality_gate: float = 0.4
    # A uniform draw above this adds a second abnormal finding.
    second_finding_draw: float = Field(default=0.7, ge=0.0, le=1.0)

    marker_keywords: tuple[str, ...] = ("possible", "mild", "small", "lesion", "fracture")
    severity_contrast: float = 0.6
    severity_contrast_weight: float = 0.3
    severity_brightness: float = 60.0
    severity_brightness_weight: float = 0.3
    severity_finding_count: int = 2
    severity_finding_weight: float = 0.4
    moderate_above: float = 0.7
    mild_above: float = 0.4


class AnalyzerConfig(BaseModel):
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


# Field name -> environment variable consulted when the field is not passed.
SETTINGS_ENV = {
    "decode_timeout_s": "MEDSCAN_DECODE_TIMEOUT_S",
    "max_upload_bytes": "MEDSCAN_MAX_UPLOAD_BYTES",
    "seed": "MEDSCAN_SEED",
    "log_level": "MEDSCAN_LOG_LEVEL",
    "cors_origins": "MEDSCAN_CORS_ORIGINS",
    "config_path": "MEDSCAN_CONFIG",
}


class ServiceSettings(BaseModel):
    """Service knobs, read from ``MEDSCAN_*`` variables unless passed explicitly.

    Env values go through the same field validation as keyword arguments, so a
    malformed variable fails as a ValidationError naming the field.
    """

    decode_timeout_s: float = Field(default=10.0, gt=0.0, le=300.0)
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    seed: int | None = Field(
        default=None,
        description=(
            "Seeds the analyzer once at startup. Each request takes the next child "
            "seed, so results repeat per process restart and request order, not per upload."
        ),
    )
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    config_path: str | None = Field(
        default=None, description="JSON file with a partial AnalyzerConfig applied over the defaults."
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_from_env(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        filled = dict(data)
        for name, env_name in SETTINGS_ENV.items():
            if name in filled:
                continue
            value = os.getenv(env_name, "").strip()
            if value:
                filled[name] = value
        return filled

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_config(current: AnalyzerConfig, patch: dict[str, Any]) -> AnalyzerConfig:
    merged_dict = deep_merge(current.model_dump(), patch)
    return AnalyzerConfig.model_validate(merged_dict)


def load_analyzer_config(path: str | Path | None = None, base: AnalyzerConfig | None = None) -> AnalyzerConfig:
    """Apply the JSON patch at ``path`` (if any) over ``base`` or the defaults."""
    base = base or AnalyzerConfig()
    if not path:
        return base
    patch = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(patch, dict):
        raise ValueError(f"{path}: expected a JSON object of config overrides")
    return merge_config(base, patch)
