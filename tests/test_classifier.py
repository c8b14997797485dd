from collections import Counter

import numpy as np
import pytest

from medscan.inference.classifier import ScanClassifier
from medscan.inference.types import BodyPart, ScanType

from conftest import ScriptedRng, make_chars


GOOD_SIZE = 200_000


@pytest.mark.parametrize("name", ["scan.dcm", "scan.DICOM", "scan.jpg", "scan.JPEG", "scan.png"])
def test_allowed_extensions_are_valid(name):
    assert ScanClassifier().is_valid(make_chars(), name, GOOD_SIZE)


@pytest.mark.parametrize("name", ["scan.gif", "scan.bmp", "scan.tiff", "scan", "scan.png.txt"])
def test_other_extensions_are_always_invalid(name):
    classifier = ScanClassifier()
    assert classifier.failed_checks(make_chars(), name, GOOD_SIZE) == ("extension",)


@pytest.mark.parametrize("size", [0, 5_000, 10_000])
def test_small_files_are_invalid(size):
    assert ScanClassifier().failed_checks(make_chars(), "scan.png", size) == ("file_size",)


def test_characteristic_rules():
    classifier = ScanClassifier()
    assert classifier.failed_checks(make_chars(has_grayscale_look=False), "a.png", GOOD_SIZE) == ("grayscale",)
    assert classifier.failed_checks(make_chars(contrast=0.2), "a.png", GOOD_SIZE) == ("contrast",)
    assert classifier.failed_checks(make_chars(brightness=180.0), "a.png", GOOD_SIZE) == ("brightness",)


def test_every_failed_rule_is_reported():
    c = make_chars(has_grayscale_look=False, contrast=0.0, brightness=240.0)
    failed = ScanClassifier().failed_checks(c, "photo.gif", 100)
    assert failed == ("extension", "grayscale", "contrast", "brightness", "file_size")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("chest_xray_01.dcm", ScanType.XRAY),
        ("Hand-X-Ray.png", ScanType.XRAY),
        ("head_MRI.jpg", ScanType.MRI),
        ("abdomen_ct.png", ScanType.CT),
        ("cat_scan.png", ScanType.CT),
        ("fetal_ultrasound.png", ScanType.ULTRASOUND),
        ("cardiac_echo.jpg", ScanType.ULTRASOUND),
        ("brain_mri_ct.png", ScanType.MRI),
    ],
)
def test_filename_hints(name, expected):
    assert ScanClassifier().detect_scan_type(make_chars(brightness=170.0, contrast=0.1), name) == expected


def test_characteristic_fallbacks():
    classifier = ScanClassifier()
    name = "image_01.png"
    assert classifier.detect_scan_type(make_chars(contrast=0.45, is_dicom_like=True), name) == ScanType.XRAY
    assert classifier.detect_scan_type(make_chars(brightness=90.0, contrast=0.35), name) == ScanType.MRI
    assert classifier.detect_scan_type(
        make_chars(brightness=120.0, contrast=0.38, is_dicom_like=True), name
    ) == ScanType.CT
    assert classifier.detect_scan_type(
        make_chars(brightness=160.0, contrast=0.32, is_dicom_like=False), name
    ) == ScanType.GENERIC


@pytest.mark.parametrize(
    "scan_type, draw, expected",
    [
        (ScanType.XRAY, 0.1, BodyPart.CHEST),
        (ScanType.XRAY, 0.45, BodyPart.EXTREMITIES),
        (ScanType.XRAY, 0.8, BodyPart.SPINE),
        (ScanType.XRAY, 0.95, BodyPart.ABDOMEN),
        (ScanType.MRI, 0.2, BodyPart.BRAIN),
        (ScanType.MRI, 0.5, BodyPart.SPINE),
        (ScanType.MRI, 0.85, BodyPart.HEART),
        (ScanType.MRI, 0.99, BodyPart.ABDOMEN),
        (ScanType.CT, 0.1, BodyPart.CHEST),
        (ScanType.CT, 0.5, BodyPart.ABDOMEN),
        (ScanType.CT, 0.65, BodyPart.BRAIN),
        (ScanType.CT, 0.9, BodyPart.HEART),
    ],
)
def test_body_part_tables(scan_type, draw, expected):
    classifier = ScanClassifier(rng=ScriptedRng(randoms=[draw]))
    assert classifier.detect_body_part(scan_type) == expected


@pytest.mark.parametrize("scan_type", [ScanType.ULTRASOUND, ScanType.GENERIC])
def test_unmapped_modalities_fall_back_to_uniform_choice(scan_type):
    classifier = ScanClassifier(rng=ScriptedRng(integers=[2]))
    assert classifier.detect_body_part(scan_type) == BodyPart.HEART


def test_xray_body_part_distribution():
    # Random by design: only the support and rough proportions are stable.
    classifier = ScanClassifier(rng=np.random.default_rng(0))
    counts = Counter(classifier.detect_body_part(ScanType.XRAY) for _ in range(4000))
    assert set(counts) <= {BodyPart.CHEST, BodyPart.EXTREMITIES, BodyPart.SPINE, BodyPart.ABDOMEN}
    assert counts[BodyPart.CHEST] / 4000 == pytest.approx(0.4, abs=0.04)
    assert counts[BodyPart.ABDOMEN] / 4000 == pytest.approx(0.1, abs=0.03)


def test_invalid_scan_draws_nothing():
    # ScriptedRng with no draws queued raises if anything is sampled
    classifier = ScanClassifier(rng=ScriptedRng())
    result = classifier.classify(make_chars(has_grayscale_look=False), "photo.jpg", GOOD_SIZE)
    assert not result.is_valid_medical_scan
    assert result.scan_type is None
    assert result.body_part is None
    assert result.failed_checks == ("grayscale",)


def test_valid_scan_classification():
    classifier = ScanClassifier(rng=ScriptedRng(randoms=[0.05]))
    result = classifier.classify(make_chars(), "chest_xray_01.dcm", GOOD_SIZE)
    assert result.is_valid_medical_scan
    assert result.scan_type == ScanType.XRAY
    assert result.body_part == BodyPart.CHEST
    assert result.failed_checks == ()
