import json

import pytest
from pydantic import ValidationError

from medscan.config import AnalyzerConfig, ServiceSettings, load_analyzer_config, merge_config


def test_defaults_match_documented_thresholds() -> None:
    cfg = AnalyzerConfig()
    assert cfg.extractor.dark_threshold == 50
    assert cfg.extractor.bright_threshold == 200
    assert cfg.extractor.grayscale_variance_max == 30
    assert cfg.classifier.valid_extensions == (".dcm", ".dicom", ".jpg", ".jpeg", ".png")
    assert cfg.classifier.max_brightness == 180
    assert (cfg.report.min_confidence, cfg.report.max_confidence) == (60, 98)


def test_config_merge_nested() -> None:
    cfg = AnalyzerConfig()

    updated = merge_config(
        cfg,
        {
            "classifier": {"min_file_size": 1},
            "report": {"base_confidence": 80},
        },
    )

    assert updated.classifier.min_file_size == 1
    assert updated.report.base_confidence == 80
    assert updated.classifier.min_contrast == cfg.classifier.min_contrast
    assert cfg.classifier.min_file_size == 10_000


def test_config_merge_validates() -> None:
    with pytest.raises(ValidationError):
        merge_config(AnalyzerConfig(), {"extractor": {"grayscale_sample_size": 0}})


def test_service_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("MEDSCAN_DECODE_TIMEOUT_S", "2.5")
    monkeypatch.setenv("MEDSCAN_SEED", "17")
    monkeypatch.setenv("MEDSCAN_CORS_ORIGINS", "http://localhost:5173, http://example.org")
    monkeypatch.setenv("MEDSCAN_LOG_LEVEL", "debug")

    settings = ServiceSettings()

    assert settings.decode_timeout_s == 2.5
    assert settings.seed == 17
    assert settings.cors_origins == ["http://localhost:5173", "http://example.org"]
    assert settings.log_level == "DEBUG"


def test_service_settings_defaults(monkeypatch) -> None:
    for name in (
        "MEDSCAN_DECODE_TIMEOUT_S",
        "MEDSCAN_SEED",
        "MEDSCAN_MAX_UPLOAD_BYTES",
        "MEDSCAN_CORS_ORIGINS",
        "MEDSCAN_LOG_LEVEL",
        "MEDSCAN_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = ServiceSettings()
    assert settings.seed is None
    assert settings.decode_timeout_s == 10.0
    assert settings.max_upload_bytes == 50 * 1024 * 1024
    assert settings.cors_origins == ["*"]
    assert settings.log_level == "INFO"
    assert settings.config_path is None


def test_explicit_settings_win_over_env(monkeypatch) -> None:
    monkeypatch.setenv("MEDSCAN_SEED", "17")
    assert ServiceSettings(seed=3).seed == 3


@pytest.mark.parametrize(
    "name, value, field",
    [
        ("MEDSCAN_SEED", "abc", "seed"),
        ("MEDSCAN_DECODE_TIMEOUT_S", "soon", "decode_timeout_s"),
        ("MEDSCAN_MAX_UPLOAD_BYTES", "0", "max_upload_bytes"),
    ],
)
def test_malformed_env_is_a_validation_error(monkeypatch, name, value, field) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError) as exc:
        ServiceSettings()
    assert field in str(exc.value)


def test_load_analyzer_config_applies_file(tmp_path) -> None:
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"classifier": {"max_brightness": 200}, "extractor": {"dark_threshold": 40}}))

    cfg = load_analyzer_config(path)

    assert cfg.classifier.max_brightness == 200
    assert cfg.extractor.dark_threshold == 40
    assert cfg.report == AnalyzerConfig().report


def test_load_analyzer_config_without_path_is_default() -> None:
    assert load_analyzer_config(None) == AnalyzerConfig()


def test_load_analyzer_config_rejects_non_object(tmp_path) -> None:
    path = tmp_path / "thresholds.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_analyzer_config(path)


def test_config_path_from_env(monkeypatch, tmp_path) -> None:
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"classifier": {"min_file_size": 1}}))
    monkeypatch.setenv("MEDSCAN_CONFIG", str(path))

    settings = ServiceSettings()

    assert settings.config_path == str(path)
    assert load_analyzer_config(settings.config_path).classifier.min_file_size == 1


def test_seed_field_documents_per_request_sequence() -> None:
    description = ServiceSettings.model_fields["seed"].description
    assert "request order" in description
    assert "not per upload" in description
