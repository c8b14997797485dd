from typing import List, Optional, Sequence

import numpy as np

from medscan.config import ReportConfig
from medscan.inference.catalog import (
    ABNORMAL_FINDINGS,
    BASE_RECOMMENDATIONS,
    FOLLOW_UP_RULES,
    INVALID_FINDING,
    INVALID_RECOMMENDATION,
    NORMAL_FINDINGS,
)
from medscan.inference.sampling import make_rng, uniform_choice
from medscan.inference.types import (
    BodyPart,
    ImageCharacteristics,
    ScanType,
    Severity,
    SyntheticReport,
)


class ReportGenerator:
    """Builds a plausible-looking report from pixel statistics.

    Nothing here is diagnostic. Confidence and severity are fixed scoring
    rules over the characteristics; which findings appear is drawn from
    ``rng``.
    """

    def __init__(self, config: Optional[ReportConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config or ReportConfig()
        self.rng = rng if rng is not None else make_rng()

    def confidence(self, c: ImageCharacteristics) -> int:
        cfg = self.config
        score = cfg.base_confidence
        if c.has_anatomical_structures:
            score += cfg.anatomical_bonus
        if c.is_dicom_like:
            score += cfg.dicom_bonus
        if c.contrast > cfg.contrast_bonus_threshold:
            score += cfg.contrast_bonus
        if c.has_grayscale_look:
            score += cfg.grayscale_bonus
        if c.brightness < cfg.underexposed_below or c.brightness > cfg.overexposed_above:
            score -= cfg.exposure_penalty
        if c.contrast < cfg.low_contrast_below:
            score -= cfg.low_contrast_penalty
        return int(max(cfg.min_confidence, min(cfg.max_confidence, score)))

    def abnormality_score(self, c: ImageCharacteristics) -> float:
        cfg = self.config
        return (
            (cfg.abnormal_contrast_weight if c.contrast > cfg.abnormal_contrast else 0.0)
            + (cfg.abnormal_brightness_weight if c.brightness < cfg.abnormal_brightness else 0.0)
            + (cfg.abnormal_dark_weight if c.dark_ratio > cfg.abnormal_dark_ratio else 0.0)
            + (cfg.abnormal_bright_weight if c.bright_ratio > cfg.abnormal_bright_ratio else 0.0)
        )

    def is_abnormal(self, c: ImageCharacteristics) -> bool:
        return self.abnormality_score(c) > self.config.abnormality_gate

    def findings(self, c: ImageCharacteristics, body_part: BodyPart) -> List[str]:
        findings: List[str] = []
        if self.is_abnormal(c):
            count = 2 if float(self.rng.random()) > self.config.second_finding_draw else 1
            pool = ABNORMAL_FINDINGS[body_part]
            for _ in range(count):
                finding = uniform_choice(self.rng, pool)
                if finding not in findings:
                    findings.append(finding)
        findings.insert(0, uniform_choice(self.rng, NORMAL_FINDINGS[body_part]))
        return findings

    def severity(self, c: ImageCharacteristics, findings: Sequence[str]) -> Severity:
        cfg = self.config
        flagged = any(marker in f for f in findings for marker in cfg.marker_keywords)
        if not flagged:
            return Severity.NORMAL

        score = (
            (cfg.severity_contrast_weight if c.contrast > cfg.severity_contrast else 0.0)
            + (cfg.severity_brightness_weight if c.brightness < cfg.severity_brightness else 0.0)
            + (cfg.severity_finding_weight if len(findings) > cfg.severity_finding_count else 0.0)
        )
        if score > cfg.moderate_above:
            return Severity.MODERATE
        if score > cfg.mild_above:
            return Severity.MILD
        return Severity.NORMAL

    def recommendations(self, severity: Severity, body_part: BodyPart, findings: Sequence[str]) -> List[str]:
        recs = list(BASE_RECOMMENDATIONS.get(severity, []))
        for part, needle, extra in FOLLOW_UP_RULES:
            if body_part == part and any(needle in f for f in findings):
                recs.append(extra)
        return recs

    def generate(self, c: ImageCharacteristics, scan_type: ScanType, body_part: BodyPart) -> SyntheticReport:
        # scan_type does not change the wording today; kept so callers hand over the full classification
        findings = self.findings(c, body_part)
        severity = self.severity(c, findings)
        return SyntheticReport(
            confidence=self.confidence(c),
            findings=tuple(findings),
            severity=severity,
            recommendations=tuple(self.recommendations(severity, body_part, findings)),
        )

    @staticmethod
    def invalid_report() -> SyntheticReport:
        return SyntheticReport(
            confidence=0,
            findings=(INVALID_FINDING,),
            severity=Severity.ERROR,
            recommendations=(INVALID_RECOMMENDATION,),
        )
