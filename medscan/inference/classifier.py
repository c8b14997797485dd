import logging
from typing import Optional, Tuple

import numpy as np

from medscan.config import ClassifierConfig
from medscan.inference.catalog import ALL_BODY_PARTS, BODY_PART_WEIGHTS
from medscan.inference.sampling import make_rng, uniform_choice, weighted_choice
from medscan.inference.types import BodyPart, ImageCharacteristics, ScanClassification, ScanType

logger = logging.getLogger(__name__)

# Checked in order; first substring hit wins.
FILENAME_HINTS: Tuple[Tuple[Tuple[str, ...], ScanType], ...] = (
    (("xray", "x-ray"), ScanType.XRAY),
    (("mri",), ScanType.MRI),
    (("ct", "cat"), ScanType.CT),
    (("ultrasound", "echo"), ScanType.ULTRASOUND),
)


class ScanClassifier:
    """Threshold rules for "is this a scan", plus modality and body part guesses.

    Validity and scan type are deterministic. The body part is a weighted
    random draw conditioned on the scan type, standing in for a real
    anatomical classifier; pass a seeded ``rng`` to pin it.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config or ClassifierConfig()
        self.rng = rng if rng is not None else make_rng()

    def failed_checks(self, c: ImageCharacteristics, filename: str, size: int) -> Tuple[str, ...]:
        cfg = self.config
        name = filename.lower()
        checks = (
            ("extension", any(name.endswith(ext.lower()) for ext in cfg.valid_extensions)),
            ("grayscale", c.has_grayscale_look),
            ("contrast", c.contrast > cfg.min_contrast),
            ("brightness", c.brightness < cfg.max_brightness),
            ("file_size", size > cfg.min_file_size),
        )
        return tuple(label for label, ok in checks if not ok)

    def is_valid(self, c: ImageCharacteristics, filename: str, size: int) -> bool:
        return not self.failed_checks(c, filename, size)

    def detect_scan_type(self, c: ImageCharacteristics, filename: str) -> ScanType:
        name = filename.lower()
        for hints, scan_type in FILENAME_HINTS:
            if any(h in name for h in hints):
                return scan_type

        cfg = self.config
        if c.is_dicom_like and c.contrast > cfg.xray_contrast:
            return ScanType.XRAY
        if c.brightness < cfg.mri_brightness_max and c.contrast > cfg.mri_contrast:
            return ScanType.MRI
        if c.brightness > cfg.ct_brightness_min and c.contrast > cfg.ct_contrast:
            return ScanType.CT
        return ScanType.GENERIC

    def detect_body_part(self, scan_type: ScanType) -> BodyPart:
        weights = BODY_PART_WEIGHTS.get(scan_type)
        if weights is None:
            # no anatomy prior for this modality
            return uniform_choice(self.rng, ALL_BODY_PARTS)
        return weighted_choice(self.rng, weights)

    def classify(self, c: ImageCharacteristics, filename: str, size: int) -> ScanClassification:
        failed = self.failed_checks(c, filename, size)
        if failed:
            logger.debug("%s rejected: %s", filename, ", ".join(failed))
            return ScanClassification(is_valid_medical_scan=False, failed_checks=failed)
        scan_type = self.detect_scan_type(c, filename)
        body_part = self.detect_body_part(scan_type)
        return ScanClassification(is_valid_medical_scan=True, scan_type=scan_type, body_part=body_part)
