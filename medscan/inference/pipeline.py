import logging
import mimetypes
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

import numpy as np

from medscan.config import AnalyzerConfig
from medscan.inference.classifier import ScanClassifier
from medscan.inference.errors import DecodeError
from medscan.inference.report import ReportGenerator
from medscan.inference.types import (
    AnalysisResult,
    FileInfo,
    ImageCharacteristics,
    ScanClassification,
    ScanUpload,
)
from medscan.preprocessing.characteristics import extract_characteristics
from medscan.preprocessing.loader import load_pixel_buffer

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanAnalyzer:
    """Loader -> extractor -> classifier -> report generator, one file at a time.

    The analyzer holds configuration only. Every ``analyze`` call gets its own
    random generator: a fresh OS-seeded one by default, or a child of ``seed``
    so that a seeded analyzer replays the same sequence of results.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        decode_timeout_s: Optional[float] = None,
    ):
        self.config = config or AnalyzerConfig()
        self.seed = seed
        self.clock = clock or _utcnow
        self.decode_timeout_s = decode_timeout_s
        self._rng = rng
        self._seq = np.random.SeedSequence(seed) if seed is not None else None
        self._lock = threading.Lock()

    def _next_rng(self) -> np.random.Generator:
        if self._rng is not None:
            return self._rng
        if self._seq is None:
            return np.random.default_rng()
        with self._lock:
            (child,) = self._seq.spawn(1)
        return np.random.default_rng(child)

    def _characteristics(self, upload: ScanUpload) -> ImageCharacteristics:
        try:
            buffer = load_pixel_buffer(upload.data, upload.name, timeout_s=self.decode_timeout_s)
        except DecodeError as e:
            logger.warning("Could not decode %s: %s", upload.name, e)
            raise
        chars = extract_characteristics(buffer, self.config.extractor)
        logger.debug("%s characteristics: %s", upload.name, chars.to_dict(full=True))
        return chars

    def screen(self, upload: ScanUpload) -> Tuple[ImageCharacteristics, ScanClassification]:
        """Deterministic validity check only; no scan type or body part is drawn."""
        chars = self._characteristics(upload)
        classifier = ScanClassifier(self.config.classifier)
        failed = classifier.failed_checks(chars, upload.name, upload.byte_size)
        return chars, ScanClassification(is_valid_medical_scan=not failed, failed_checks=failed)

    def analyze(self, upload: ScanUpload) -> AnalysisResult:
        started = time.perf_counter()
        chars = self._characteristics(upload)

        rng = self._next_rng()
        classifier = ScanClassifier(self.config.classifier, rng=rng)
        generator = ReportGenerator(self.config.report, rng=rng)

        classification = classifier.classify(chars, upload.name, upload.byte_size)
        if classification.is_valid_medical_scan:
            report = generator.generate(chars, classification.scan_type, classification.body_part)
        else:
            report = generator.invalid_report()

        result = AnalysisResult(
            classification=classification,
            characteristics=chars,
            confidence=report.confidence,
            findings=report.findings,
            severity=report.severity,
            recommendations=report.recommendations,
            file=FileInfo.from_upload(upload),
            uploaded_at=self.clock(),
            # drawn last so the id never shifts the report draws
            id=str(uuid.UUID(bytes=rng.bytes(16), version=4)),
        )
        logger.info(
            "Analyzed %s valid=%s scan_type=%s body_part=%s confidence=%d severity=%s (%.1f ms)",
            upload.name,
            result.is_valid_medical_scan,
            result.scan_type.value if result.scan_type else None,
            result.body_part.value if result.body_part else None,
            result.confidence,
            result.severity.value,
            (time.perf_counter() - started) * 1000.0,
        )
        return result

    def analyze_path(self, path) -> AnalysisResult:
        p = Path(path)
        data = p.read_bytes()
        content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        upload = ScanUpload(
            name=p.name,
            data=data,
            content_type=content_type,
            last_modified=int(p.stat().st_mtime * 1000),
        )
        return self.analyze(upload)
